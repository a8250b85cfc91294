"""Storefront checkout and order lifecycle service"""
