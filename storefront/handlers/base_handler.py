from typing import Any, Dict, Optional, Type, TypeVar
import logging
from aiohttp import web
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python
from ..config import Config
from ..errors import ValidationError
from ..models.admin_log import AdminAction
from ..utils.security import get_client_ip

ModelT = TypeVar("ModelT", bound=BaseModel)

class BaseHandler:
    """Base class for HTTP handlers"""

    def __init__(self, storefront):
        self.storefront = storefront
        self.logger = logging.getLogger(self.__class__.__module__)

    @staticmethod
    async def read_json(request: web.Request) -> Any:
        """Decode the JSON body or fail with a 400"""
        try:
            return await request.json()
        except ValueError:
            raise ValidationError("Request body must be valid JSON")

    @staticmethod
    def parse(model: Type[ModelT], data: Any,
              message: str = "Invalid request data") -> ModelT:
        """Validate a request body against a model"""
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in errors})
            raise ValidationError(f"{message}: {', '.join(fields)}", details=errors)

    @staticmethod
    def json_response(data: Dict[str, Any], status: int = 200) -> web.Response:
        """Respond with data; models, UUIDs and decimals are serialised"""
        return web.json_response(to_jsonable_python(data), status=status)

    @staticmethod
    def user_id(request: web.Request) -> Optional[str]:
        return request.headers.get('X-User-Id')

    async def is_admin(self, user_id: str) -> bool:
        """Check admin access"""
        if user_id in Config.ADMIN_IDS:
            return True
        return await self.storefront.user_store.is_admin(user_id)

    @staticmethod
    def admin_action(request: web.Request, action: str, resource_type: Optional[str] = None,
                     resource_id: Optional[str] = None,
                     details: Optional[Dict[str, Any]] = None) -> AdminAction:
        """Audit record for the admin performing this request"""
        return AdminAction(
            admin_id=request['admin_id'],
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get('User-Agent')
        )
