"""
국토교통부 아파트 매매 실거래가 API 클라이언트

- 요청 URL 생성 및 서비스 키 인코딩
- 고정 지연 재시도(최대 3회 시도, 1초 간격)
- 월 범위 순차 호출 (월 단위 실패는 건너뜀)
- 응답 결과 코드 검증/해석
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from typing import Any, List, Optional
from urllib.parse import quote, urlencode

import requests

from aptdeal.collectors.trade_parser import AptTradeRecord, TEXT_KEY, merge_monthly_data
from aptdeal.config.config_loader import MolitApiConfig, get_config
from aptdeal.validators.param_validator import ApiRequestParams

logger = logging.getLogger(__name__)

ENDPOINT_PATH = "/getRTMSDataSvcAptTradeDev"
DEFAULT_NUM_OF_ROWS = 100
DEFAULT_PAGE_NO = 1
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0
RANGE_CALL_DELAY_SECONDS = 0.1

SUCCESS_RESULT_CODE = "00"
RESULT_CODE_MESSAGES = {
    "00": "정상",
    "03": "데이터 없음",
    "22": "서비스 요청 제한 횟수 초과",
    "30": "등록되지 않은 서비스키",
    "31": "기간만료된 서비스키",
    "32": "등록되지 않은 IP",
    "99": "기타 오류",
}

_YM_RE = re.compile(r"[0-9]{6}")


class MolitApiError(Exception):
    """국토교통부 API 호출 오류"""
    pass


def encode_service_key(service_key: str) -> str:
    """서비스 키 URL 인코딩 (encodeURIComponent 호환)"""
    return quote(service_key, safe="-_.!~*'()")


def validate_api_response(response: Any) -> bool:
    """response.header.resultCode가 '00'인지 확인 (구조가 다르면 False)"""
    envelope = response.get("response") if isinstance(response, dict) else None
    header = envelope.get("header") if isinstance(envelope, dict) else None
    if not isinstance(header, dict):
        return False

    result_code = header.get("resultCode")
    if isinstance(result_code, dict):
        result_code = result_code.get(TEXT_KEY)
    if isinstance(result_code, str):
        result_code = result_code.strip()
    return result_code == SUCCESS_RESULT_CODE


def interpret_error_code(result_code: str) -> str:
    """API 결과 코드 해석"""
    return RESULT_CODE_MESSAGES.get(result_code, f"알 수 없는 오류 (코드: {result_code})")


def iter_deal_months(start_ym: str, end_ym: str) -> List[str]:
    """
    start_ym ~ end_ym (양끝 포함) 월 목록

    start_ym이 end_ym보다 늦으면 빈 리스트를 반환합니다.

    Raises:
        ValueError: YYYYMM 형식이 아닐 때
    """
    for ym in (start_ym, end_ym):
        if not isinstance(ym, str) or not _YM_RE.fullmatch(ym.strip()):
            raise ValueError(f"Invalid YYYYMM format: {ym}")

    start = datetime.strptime(start_ym.strip(), "%Y%m").date()
    end = datetime.strptime(end_ym.strip(), "%Y%m").date()

    months: List[str] = []
    current = start
    while current <= end:
        months.append(current.strftime("%Y%m"))
        if current.month == 12:
            current = current.replace(year=current.year + 1, month=1)
        else:
            current = current.replace(month=current.month + 1)
    return months


class MolitTradeClient:
    """국토교통부 아파트 매매 실거래가 API 클라이언트"""

    def __init__(self, config: MolitApiConfig, session: Optional[requests.Session] = None):
        """
        Args:
            config: 접속 설정 (base_url, service_key 등)
            session: 재사용할 requests 세션 (None이면 새로 생성)
        """
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': config.user_agent,
            'Accept': 'application/xml, text/xml;q=0.9, */*;q=0.8',
        })

    def build_url(self, params: ApiRequestParams) -> str:
        """API 요청 URL 생성 (결과 수 기본 100, 페이지 기본 1)"""
        query = urlencode({
            "serviceKey": params.service_key,
            "LAWD_CD": params.lawd_cd,
            "DEAL_YMD": params.deal_ymd,
            "numOfRows": params.num_of_rows or DEFAULT_NUM_OF_ROWS,
            "pageNo": params.page_no or DEFAULT_PAGE_NO,
        })
        return f"{self.config.base_url}{ENDPOINT_PATH}?{query}"

    def fetch_with_retry(self, url: str) -> requests.Response:
        """
        GET 요청 (네트워크 오류/2xx 외 응답 시 재시도)

        Raises:
            requests.RequestException: MAX_ATTEMPTS회 모두 실패한 경우 마지막 오류
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self.session.get(
                    url,
                    headers={'Content-Type': 'application/xml'},
                    timeout=self.config.timeout_seconds,
                )
                if not 200 <= response.status_code < 300:
                    raise requests.HTTPError(
                        f"HTTP error! status: {response.status_code}",
                        response=response,
                    )
                return response
            except requests.RequestException as e:
                if attempt >= MAX_ATTEMPTS:
                    raise
                logger.warning(
                    "API 요청 실패 (%s/%s), %.1f초 후 재시도: %s",
                    attempt,
                    MAX_ATTEMPTS,
                    RETRY_DELAY_SECONDS,
                    e,
                )
                time.sleep(RETRY_DELAY_SECONDS)

    def call_api(self, params: ApiRequestParams) -> str:
        """
        단일 월 API 호출 후 XML 본문을 반환합니다.

        결과 코드(resultCode)는 여기서 검사하지 않습니다.

        Raises:
            MolitApiError: 재시도 소진 또는 빈 응답
        """
        url = self.build_url(params)
        try:
            response = self.fetch_with_retry(url)
            if not response.encoding or response.encoding.lower() == "iso-8859-1":
                response.encoding = "utf-8"
            xml_data = response.text
            if not xml_data:
                raise MolitApiError("Empty response from API")
            return xml_data
        except (requests.RequestException, MolitApiError) as e:
            logger.error(f"API 호출 오류: lawd_cd={params.lawd_cd} deal_ymd={params.deal_ymd} err={e}")
            raise MolitApiError(f"국토교통부 API 호출 실패: {e}") from e

    def call_api_for_date_range(
        self,
        lawd_cd: str,
        start_ym: str,
        end_ym: str,
        service_key: Optional[str] = None,
    ) -> List[str]:
        """
        월 범위 순차 호출

        실패한 월은 경고 로그 후 건너뛰고, 성공한 월의 XML만 호출 순서대로 반환합니다.
        성공 호출 뒤에는 rate limit 보호를 위해 짧게 대기합니다.
        """
        key = service_key or self.config.service_key
        results: List[str] = []
        for deal_ym in iter_deal_months(start_ym, end_ym):
            try:
                xml_data = self.call_api(ApiRequestParams(service_key=key, lawd_cd=lawd_cd, deal_ymd=deal_ym))
            except MolitApiError as e:
                logger.warning(f"{deal_ym} 데이터 조회 실패: {e}")
                continue
            results.append(xml_data)
            time.sleep(RANGE_CALL_DELAY_SECONDS)
        return results

    def fetch_trades(self, lawd_cd: str, start_ym: str, end_ym: Optional[str] = None) -> List[AptTradeRecord]:
        """월 범위 조회 후 정제/병합된 거래 리스트 (거래일 최신순)"""
        pages = self.call_api_for_date_range(lawd_cd, start_ym, end_ym or start_ym)
        records = merge_monthly_data(pages)
        logger.info(
            "MOLIT 거래 조회 완료: lawd_cd=%s %s~%s pages=%s records=%s",
            lawd_cd,
            start_ym,
            end_ym or start_ym,
            len(pages),
            len(records),
        )
        return records


_molit_trade_client_singleton: Optional[MolitTradeClient] = None


def get_molit_trade_client() -> MolitTradeClient:
    """환경 설정 기반 전역 클라이언트 반환"""
    global _molit_trade_client_singleton
    if _molit_trade_client_singleton is None:
        _molit_trade_client_singleton = MolitTradeClient(get_config())
    return _molit_trade_client_singleton


def reset_molit_trade_client() -> None:
    global _molit_trade_client_singleton
    _molit_trade_client_singleton = None
