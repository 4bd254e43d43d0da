"""Application configuration using Pydantic."""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from predictor.variants import LATEST_VERSION, VARIANTS


class Settings(BaseSettings):
    remote_backend_url: Optional[str] = None
    remote_timeout_seconds: float = Field(10.0, ge=10.0, le=15.0)

    model_version: str = LATEST_VERSION
    log_level: str = 'info'

    student_data_path: Path = Path('data/student_performance_synthetic.csv')
    artifact_dir: Path = Path('artifacts')

    model_config = {
        'env_prefix': 'PREDICTOR_',
        'env_file': '.env',
        'extra': 'ignore',
        'protected_namespaces': (),
    }

    @field_validator('model_version')
    @classmethod
    def _known_version(cls, value: str) -> str:
        if value not in VARIANTS:
            raise ValueError(f"unknown model_version '{value}', expected one of {sorted(VARIANTS)}")
        return value

    @field_validator('remote_backend_url')
    @classmethod
    def _strip_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip('/')


settings = Settings()
