from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional, Dict, List

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import ValidationError

from ..errors import ConfigError
from .schema import ResearchConfig, Credentials


# campo de Credentials -> variáveis de ambiente (primeira encontrada ganha); todas obrigatórias
ENV_VARS: Dict[str, List[str]] = {
    "refresh_token": ["AMAZON_REFRESH_TOKEN"],
    "client_id": ["AMAZON_CLIENT_ID"],
    "client_secret": ["AMAZON_CLIENT_SECRET"],
    "aws_access_key_id": ["AWS_ACCESS_KEY_ID"],
    "aws_secret_access_key": ["AWS_SECRET_ACCESS_KEY"],
    "role_arn": ["RoleArn", "ROLE_ARN"],
    "role_session_name": ["RoleSessionName", "ROLE_SESSION_NAME"],
}

REQUIRED = tuple(ENV_VARS)


def load_config(path: Optional[str] = None) -> ResearchConfig:
    if not path:
        return ResearchConfig()
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping/dict. Got: {type(data)}")
    try:
        cfg = ResearchConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
    cfg.raw = data
    return cfg


def load_credentials(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> Credentials:
    """Lê as credenciais uma vez no arranque. O ambiente real tem prioridade sobre o .env."""
    merged: Dict[str, str] = {}
    if dotenv_path is not None or env is None:
        file_values = dotenv_values(dotenv_path or find_dotenv(usecwd=True))
        merged.update({k: v for k, v in file_values.items() if v is not None})
    merged.update(os.environ if env is None else env)

    values: Dict[str, Optional[str]] = {}
    for field, names in ENV_VARS.items():
        values[field] = None
        for name in names:
            v = (merged.get(name) or "").strip()
            if v:
                values[field] = v
                break

    missing = [ENV_VARS[f][0] for f in REQUIRED if not values[f]]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    try:
        return Credentials(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid credentials: {e}") from e
