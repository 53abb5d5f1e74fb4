"""
请求者身份
用户信息由外部用户目录维护，这里只保留核心做权限判断所需的字段
"""

from enum import Enum

from pydantic import Field

from .base import BaseEntity


class UserRole(str, Enum):
    """用户角色"""
    STUDENT = "student"
    ADMIN = "admin"    # 食堂/宿舍管理人员


class Requester(BaseEntity):
    """发起操作的用户"""
    user_id: str = Field(..., description="学生学号或工作人员ID")
    role: UserRole = Field(UserRole.STUDENT, description="角色")

    @property
    def is_operator(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_manage(self, student_id: str) -> bool:
        """本人或管理人员可以操作该学生的预订"""
        return self.is_operator or self.user_id == student_id
