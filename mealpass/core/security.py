"""
安全相关功能
令牌由外部用户目录签发，这里只负责校验并解析出请求者身份

令牌载荷：
- sub: 学生学号或工作人员ID
- role: student | admin
"""

from datetime import datetime, timedelta
from typing import Any, Dict

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import settings
from ..models.user import Requester, UserRole
from .exceptions import AuthenticationError, ForbiddenError


class SecurityManager:
    """安全管理器"""

    def create_jwt_token(self, user_id: str, role: UserRole = UserRole.STUDENT,
                         additional_claims: Dict[str, Any] = None) -> str:
        """签发JWT token（供开发联调和测试使用）"""
        payload = {
            "sub": user_id,
            "role": UserRole(role).value,
            "exp": datetime.utcnow() + timedelta(hours=settings.jwt_expire_hours),
            "iat": datetime.utcnow(),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_requester_from_token(self, token: str) -> Requester:
        """从token中解析请求者"""
        payload = self.decode_jwt_token(token)
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token missing subject")
        try:
            role = UserRole(payload.get("role", UserRole.STUDENT.value))
        except ValueError:
            raise AuthenticationError("Token carries an unknown role")
        return Requester(user_id=str(user_id), role=role)


# 全局安全管理器实例
security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_requester(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer)
) -> Requester:
    """从Authorization header中提取并验证请求者"""
    if credentials is None:
        raise AuthenticationError()
    return security_manager.get_requester_from_token(credentials.credentials)


async def require_operator(requester: Requester = Depends(get_requester)) -> Requester:
    """检查管理人员权限"""
    if not requester.is_operator:
        raise ForbiddenError("Operator permission required")
    return requester
