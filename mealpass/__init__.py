"""
MealPass 宿舍订餐与核销服务

学生提前预订餐次并获得一次性核销码（前端渲染为二维码），
食堂工作人员在供餐时扫码或手动输入核销码完成核销。

技术栈：FastAPI + DuckDB + Pydantic + JWT
"""

__version__ = "1.0.0"
