"""
测试配置文件
提供测试所需的fixtures和配置
"""

import os

# 必须在导入应用模块之前设置，使全局 db_manager 指向内存库
os.environ.setdefault("MEALPASS_DATABASE_URL", ":memory:")
os.environ.setdefault("MEALPASS_JWT_SECRET_KEY", "test-secret-key")

from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient

from ..api.deps import get_booking_service, get_meal_catalog, get_redemption_service
from ..app import create_app
from ..core.database import DatabaseManager
from ..core.security import security_manager
from ..models.meal import MealRef, MealType
from ..models.user import Requester, UserRole
from ..services.audit_log import AuditLog
from ..services.booking_service import BookingService
from ..services.booking_store import BookingStore
from ..services.meal_catalog import MealCatalog
from ..services.redemption_service import RedemptionService
from ..services.scan_history import RecentScanHistory

MEAL_DAY = date(2024, 6, 10)


@pytest.fixture
def test_db():
    """测试数据库（内存库）"""
    db = DatabaseManager(":memory:")
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def catalog(test_db):
    """已排好 2024-06-10 三餐的餐次目录

    午餐、晚餐有标准供餐时间，早餐没有，走默认时间窗
    """
    catalog = MealCatalog(test_db)
    catalog.schedule_meal(MEAL_DAY, MealType.BREAKFAST, None, "Idli & Sambar")
    catalog.schedule_meal(MEAL_DAY, MealType.LUNCH, time(12, 0), "Veg Thali")
    catalog.schedule_meal(MEAL_DAY, MealType.DINNER, time(19, 30), "Paneer Curry")
    return catalog


@pytest.fixture
def store(test_db):
    return BookingStore(test_db)


@pytest.fixture
def booking_svc(store, catalog, test_db):
    return BookingService(store=store, catalog=catalog, audit=AuditLog(test_db))


@pytest.fixture
def redemption_svc(store, catalog, test_db):
    return RedemptionService(store=store, catalog=catalog, audit=AuditLog(test_db),
                             history=RecentScanHistory(limit=5))


@pytest.fixture
def lunch_ref():
    return MealRef(meal_date=MEAL_DAY, meal_type=MealType.LUNCH)


@pytest.fixture
def booking_time():
    """预订发生在当天上午"""
    return datetime(2024, 6, 10, 8, 0)


@pytest.fixture
def student():
    return Requester(user_id="S1", role=UserRole.STUDENT)


@pytest.fixture
def other_student():
    return Requester(user_id="S2", role=UserRole.STUDENT)


@pytest.fixture
def operator():
    return Requester(user_id="staff-1", role=UserRole.ADMIN)


@pytest.fixture
def live_catalog(catalog):
    """服务器当前日期的餐次，供走真实时钟的 API 测试使用"""
    now = datetime.now()
    catalog.schedule_meal(now.date(), MealType.LUNCH, now.time().replace(microsecond=0), "Today Lunch")
    catalog.schedule_meal(now.date() + timedelta(days=1), MealType.DINNER, time(19, 30), "Tomorrow Dinner")
    return catalog


@pytest.fixture
def app_instance(booking_svc, redemption_svc, live_catalog):
    """测试应用，服务依赖替换为绑定测试库的实例"""
    app = create_app()
    app.dependency_overrides[get_booking_service] = lambda: booking_svc
    app.dependency_overrides[get_redemption_service] = lambda: redemption_svc
    app.dependency_overrides[get_meal_catalog] = lambda: live_catalog
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_instance):
    """测试客户端"""
    return TestClient(app_instance)


@pytest.fixture
def auth_headers():
    """学生认证请求头"""
    token = security_manager.create_jwt_token("S1", UserRole.STUDENT)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_student_headers():
    token = security_manager.create_jwt_token("S2", UserRole.STUDENT)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    """管理人员认证请求头"""
    token = security_manager.create_jwt_token("staff-1", UserRole.ADMIN)
    return {"Authorization": f"Bearer {token}"}
