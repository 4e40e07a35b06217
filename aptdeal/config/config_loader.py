"""
국토교통부 실거래가 API 접속 설정 로더 및 검증 모듈

API 클라이언트는 환경 변수를 직접 읽지 않고 MolitApiConfig를 주입받습니다.
환경 변수(.env 포함)를 읽는 곳은 이 모듈뿐입니다.
"""
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
import logging

logger = logging.getLogger(__name__)

ENV_BASE_URL = "MOLIT_API_BASE_URL"
ENV_SERVICE_KEY = "MOLIT_API_KEY"
ENV_TIMEOUT = "MOLIT_API_TIMEOUT"


class MolitApiConfig(BaseModel):
    """국토교통부 API 접속 설정"""
    base_url: str = Field(..., min_length=1, description="API 기본 URL (엔드포인트 경로 제외)")
    service_key: str = Field(..., min_length=1, description="공공데이터포털 서비스 키")
    timeout_seconds: float = Field(default=30.0, gt=0, le=300, description="요청 타임아웃 (초)")
    user_agent: str = Field(default="aptdeal-molit-client/1.0", description="User-Agent 헤더")

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """엔드포인트 경로를 붙일 수 있도록 끝의 '/' 제거"""
        stripped = v.strip().rstrip('/')
        if not stripped:
            raise ValueError("base_url이 비어 있습니다")
        return stripped

    @field_validator('service_key')
    @classmethod
    def strip_service_key(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("service_key가 비어 있습니다")
        return stripped


class ConfigLoader:
    """환경 변수 기반 설정 로더"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None):
        """
        Args:
            environ: 읽을 환경 변수 매핑 (None이면 os.environ)
            dotenv_path: .env 파일 경로 (None이면 기본 탐색)
        """
        self._environ = environ
        self._dotenv_path = dotenv_path
        self._config: Optional[MolitApiConfig] = None

    def load(self) -> MolitApiConfig:
        """
        환경 변수에서 설정을 읽고 검증합니다.

        Raises:
            ValueError: 필수 값 누락 또는 검증 실패 시
        """
        if self._environ is None:
            load_dotenv(self._dotenv_path)
            environ: Mapping[str, str] = os.environ
        else:
            environ = self._environ

        base_url = environ.get(ENV_BASE_URL, "").strip()
        service_key = environ.get(ENV_SERVICE_KEY, "").strip()
        if not base_url:
            raise ValueError(f"{ENV_BASE_URL} is required")
        if not service_key:
            raise ValueError(f"{ENV_SERVICE_KEY} is required")

        payload = {"base_url": base_url, "service_key": service_key}
        timeout = environ.get(ENV_TIMEOUT, "").strip()
        if timeout:
            payload["timeout_seconds"] = timeout

        try:
            self._config = MolitApiConfig(**payload)
        except Exception as e:
            raise ValueError(f"설정 검증 오류: {e}") from e
        logger.info(f"MOLIT API 설정 로드 완료: base_url={self._config.base_url}")
        return self._config

    def get_config(self) -> MolitApiConfig:
        """캐시된 설정을 반환합니다. 없으면 로드합니다."""
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> MolitApiConfig:
        self._config = None
        return self.load()


_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """전역 설정 로더 인스턴스 반환"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def get_config() -> MolitApiConfig:
    return get_config_loader().get_config()


def reload_config() -> MolitApiConfig:
    return get_config_loader().reload()
