from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/mealpass.duckdb"

    # JWT配置（令牌由外部用户目录签发，这里只做校验）
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # API配置
    api_title: str = "MealPass API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 核销时间窗：标准供餐时间前30分钟至后120分钟
    redemption_early_minutes: int = 30
    redemption_late_minutes: int = 120

    # 核销窗口结束后不再接受该餐次的预订
    enforce_booking_cutoff: bool = True

    # 扫码台“最近扫描”列表长度
    recent_scan_limit: int = 10

    # 开发模式
    debug: bool = False

    model_config = {"env_file": ".env", "env_prefix": "MEALPASS_", "case_sensitive": False}


# 全局设置实例
settings = Settings()
