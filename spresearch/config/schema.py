from __future__ import annotations

from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Any, Literal


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    output_report: str = "Research.csv"
    logs_dir: str = "logs"


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    endpoint: str = "https://sellingpartnerapi-na.amazon.com"
    token_url: str = "https://api.amazon.com/auth/o2/token"
    marketplace_id: str = "ATVPDKIKX0DER"
    region: str = "us-east-1"
    timeout_s: int = 30


class PacingConfig(BaseModel):
    """Pausas fixas entre chamadas (segundos), aplicadas com ou sem sucesso."""
    model_config = ConfigDict(extra="allow")
    catalog_s: float = Field(default=0.5, ge=0)
    pricing_s: float = Field(default=1.0, ge=0)
    fees_s: float = Field(default=2.0, ge=0)


class RetryConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_tries: int = Field(default=3, ge=1)
    delay_s: float = Field(default=3.0, ge=0)
    token_max_tries: int = Field(default=3, ge=1)
    token_delay_s: float = Field(default=10.0, ge=0)
    token_refresh_interval_s: float = Field(default=58 * 60, gt=0)


class ResolverConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    batch_size: int = Field(default=20, ge=1, le=20)


class ReportConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_profit: Decimal = Decimal("1")
    direction: Literal["at_least", "at_most"] = "at_least"
    include_company: bool = True
    include_name: bool = True


class ResearchConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    version: int = 1
    paths: PathsConfig = Field(default_factory=PathsConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    # Keep raw config for audit
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)


class Credentials(BaseModel):
    model_config = ConfigDict(extra="ignore")
    refresh_token: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)

    # role assumida via STS no arranque
    aws_access_key_id: str = Field(min_length=1)
    aws_secret_access_key: str = Field(min_length=1)
    role_arn: str = Field(min_length=1)
    role_session_name: str = Field(min_length=1)
