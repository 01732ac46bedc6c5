"""
配置加载

读取项目根目录下的 config.yaml（设置了 ENV 时优先读取 config-{ENV}.yaml），
字符串中的 ${VAR} / ${VAR:default} 用环境变量替换后再交给 pydantic 校验
"""
import os
import re
from decimal import Decimal
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import BaseModel, field_validator, model_validator

ROOT_DIR = Path(__file__).resolve().parents[2]
ENV_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")


def expand_env(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: expand_env(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [expand_env(item) for item in obj]
    if isinstance(obj, str):
        return ENV_PATTERN.sub(lambda m: os.getenv(m.group("name"), m.group("default") or ""), obj)
    return obj


class DatabaseConfig(BaseModel):
    host: str
    port: int
    user: str
    password: str = ""
    name: str
    charset: str = "utf8mb4"


class LogConfig(BaseModel):
    level: str = "INFO"
    file: str = ""


class RedisConfig(BaseModel):
    host: str
    port: int
    password: str = ""
    db: int = 0
    max_connections: int = 20

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


class CeleryConfig(BaseModel):
    task_serializer: str = "json"
    result_serializer: str = "json"
    accept_content: List[str] = ["json"]
    result_expires: int = 3600
    timezone: str = "Asia/Shanghai"


class DocConfig(BaseModel):
    docs_url: str = "/docs"
    enable_docs: bool = True
    redoc_url: str = "/redoc"
    enable_redoc: bool = False


class AuthConfig(BaseModel):
    token_expire_days: int = 7
    max_tokens_per_user: int = 0


class AdminConfig(BaseModel):
    """默认管理员账户"""
    username: str = "admin"
    email: str = "admin@example.com"
    password: str = "admin123456"


class CreditConfig(BaseModel):
    """使用次数相关配置"""
    new_user_free_credits: int = 5  # 新用户赠送次数，0 表示不赠送
    free_credits_expiry_days: int = 30  # 免费次数有效天数
    free_credits_never_expire: bool = False  # 免费次数是否永不过期
    admin_grant_validity_days: int = 365  # 管理员赠送次数有效天数


class RechargeConfig(BaseModel):
    expire_minutes: int = 30  # 待支付充值记录过期时间（分钟）


class PaymentConfig(BaseModel):
    """支付方式开关"""
    balance_enabled: bool = True
    wxpay_enabled: bool = True
    alipay_enabled: bool = True
    max_amount: Decimal = Decimal("99999.99")


class EpayConfig(BaseModel):
    """易支付配置"""
    enabled: bool = False
    pid: str = ""  # 商户ID
    key: str = ""  # 商户密钥（用于MD5签名）
    api_url: str = ""  # 接口地址，如 https://pay.example.com
    notify_url: str = ""  # 异步通知地址
    return_url: str = ""  # 同步跳转地址
    timeout: float = 30.0  # 下单请求超时（秒）
    query_timeout: float = 10.0  # 查询请求超时（秒）

    @field_validator("pid", mode="before")
    @classmethod
    def pid_to_str(cls, v):
        return str(v)

    @property
    def is_complete(self) -> bool:
        return bool(self.enabled and self.pid and self.key and self.api_url)


class Setting(BaseModel):
    debug_mode: bool = False
    project_name: str
    prefix: str
    timezone: str = "Asia/Shanghai"
    base_url: str
    secret_key: str
    database: DatabaseConfig
    log: LogConfig = LogConfig()
    redis: RedisConfig
    celery: CeleryConfig = CeleryConfig()
    doc: DocConfig = DocConfig()
    auth: AuthConfig = AuthConfig()
    admin: AdminConfig = AdminConfig()
    credit: CreditConfig = CreditConfig()
    recharge: RechargeConfig = RechargeConfig()
    payment: PaymentConfig = PaymentConfig()
    epay: EpayConfig = EpayConfig()

    @model_validator(mode="after")
    def default_epay_urls(self) -> "Setting":
        """未单独配置时，易支付回调地址由 base_url + prefix 拼出"""
        base = f"{self.base_url.rstrip('/')}{self.prefix}"
        if not self.epay.notify_url:
            self.epay.notify_url = f"{base}/payment/notify"
        if not self.epay.return_url:
            self.epay.return_url = f"{base}/payment/return"
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "Setting":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**expand_env(data))


def _config_path() -> Path:
    default_path = ROOT_DIR / "config.yaml"
    env = os.getenv("ENV")
    if env:
        env_path = ROOT_DIR / f"config-{env}.yaml"
        if env_path.exists():
            return env_path
    if not default_path.exists():
        raise FileNotFoundError(f"配置文件 {default_path} 未找到，请检查路径。")
    return default_path


config: Setting = Setting.from_yaml(_config_path())

__all__ = ["config"]
