"""Pydantic models for records and request bodies"""
