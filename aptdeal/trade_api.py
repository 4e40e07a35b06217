"""
아파트 매매 실거래 조회 API

흐름:
- 요청 파라미터/검색 필터 검증 (실패 시 400 Validation Error 응답)
- 국토교통부 API 월 범위 순차 조회 (실패한 월은 제외)
- XML 정제 -> 필터 -> (선택) 단지별/면적별 그룹화
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from aptdeal.collectors.molit_trade_client import (
    MolitTradeClient,
    get_molit_trade_client,
    interpret_error_code,
    SUCCESS_RESULT_CODE,
)
from aptdeal.collectors.trade_parser import (
    AptTradeRecord,
    filter_trades,
    group_by_apartment,
    group_by_area,
)
from aptdeal.validators.param_validator import (
    ApiRequestParams,
    TradeSearchFilters,
    validate_api_params,
    validate_search_filters,
)

logger = logging.getLogger(__name__)

GroupBy = Literal["none", "apartment", "area"]

router = APIRouter(prefix="/real-estate", tags=["real-estate"])


class TradeQueryValidationError(Exception):
    """조회 조건 검증 실패"""
    pass


class TradeQueryResponse(BaseModel):
    lawd_cd: str
    start_ym: str
    end_ym: str
    group_by: GroupBy = "none"
    total: int
    rows: List[AptTradeRecord] = Field(default_factory=list)
    groups: Dict[str, List[AptTradeRecord]] = Field(default_factory=dict)
    filters: Dict[str, Any] = Field(default_factory=dict)


class ErrorCodeResponse(BaseModel):
    code: str
    message: str
    is_success: bool


def create_validation_error_response(error: str) -> JSONResponse:
    """검증 오류를 HTTP 400 응답으로 변환"""
    return JSONResponse(
        status_code=400,
        content={"error": "Validation Error", "message": error},
    )


def _group_records(records: List[AptTradeRecord], group_by: GroupBy) -> Dict[str, List[AptTradeRecord]]:
    if group_by == "apartment":
        return group_by_apartment(records)
    if group_by == "area":
        return {str(area): rows for area, rows in group_by_area(records).items()}
    return {}


def execute_trade_query(
    *,
    lawd_cd: str,
    start_ym: str,
    end_ym: Optional[str],
    group_by: GroupBy = "none",
    filters: Optional[TradeSearchFilters] = None,
    client: Optional[MolitTradeClient] = None,
    today: Optional[date] = None,
) -> TradeQueryResponse:
    """
    실거래 조회 실행

    Raises:
        TradeQueryValidationError: 파라미터/필터 검증 실패
    """
    trade_client = client or get_molit_trade_client()
    search_filters = filters or TradeSearchFilters()
    resolved_end_ym = (end_ym or start_ym or "").strip()
    resolved_start_ym = (start_ym or "").strip()
    resolved_lawd_cd = (lawd_cd or "").strip()

    for deal_ymd in (resolved_start_ym, resolved_end_ym):
        result = validate_api_params(
            ApiRequestParams(
                service_key=trade_client.config.service_key,
                lawd_cd=resolved_lawd_cd,
                deal_ymd=deal_ymd,
            ),
            today=today,
        )
        if not result.is_valid:
            raise TradeQueryValidationError(result.error)

    if resolved_start_ym > resolved_end_ym:
        raise TradeQueryValidationError(
            f"시작 계약년월은 종료 계약년월보다 늦을 수 없습니다: {resolved_start_ym} > {resolved_end_ym}"
        )

    filter_result = validate_search_filters(search_filters, today=today)
    if not filter_result.is_valid:
        raise TradeQueryValidationError(filter_result.error)

    records = trade_client.fetch_trades(resolved_lawd_cd, resolved_start_ym, resolved_end_ym)
    matched = filter_trades(records, search_filters)

    return TradeQueryResponse(
        lawd_cd=resolved_lawd_cd,
        start_ym=resolved_start_ym,
        end_ym=resolved_end_ym,
        group_by=group_by,
        total=len(matched),
        rows=matched,
        groups=_group_records(matched, group_by),
        filters={key: value for key, value in asdict(search_filters).items() if value is not None},
    )


@router.get("/trades", response_model=TradeQueryResponse)
def query_trades(
    lawd_cd: str = Query(..., description="지역코드 LAWD_CD (5자리)"),
    start_ym: str = Query(..., description="조회 시작 계약년월 YYYYMM"),
    end_ym: Optional[str] = Query(default=None, description="조회 종료 계약년월 YYYYMM (기본: start_ym)"),
    group_by: GroupBy = Query(default="none", description="none | apartment(단지별) | area(면적별)"),
    keyword: Optional[str] = Query(default=None, description="아파트명 키워드"),
    min_price: Optional[int] = Query(default=None, description="최소 거래금액 (만원)"),
    max_price: Optional[int] = Query(default=None, description="최대 거래금액 (만원)"),
    min_area: Optional[float] = Query(default=None, description="최소 전용면적 (㎡)"),
    max_area: Optional[float] = Query(default=None, description="최대 전용면적 (㎡)"),
    min_build_year: Optional[int] = Query(default=None, description="최소 건축년도"),
    max_build_year: Optional[int] = Query(default=None, description="최대 건축년도"),
):
    try:
        client = get_molit_trade_client()
    except ValueError as err:
        logger.error("MOLIT API 설정 오류: %s", err)
        raise HTTPException(status_code=503, detail="Real-estate API is not configured") from err

    filters = TradeSearchFilters(
        keyword=keyword,
        min_price=min_price,
        max_price=max_price,
        min_area=min_area,
        max_area=max_area,
        min_build_year=min_build_year,
        max_build_year=max_build_year,
    )
    try:
        return execute_trade_query(
            lawd_cd=lawd_cd,
            start_ym=start_ym,
            end_ym=end_ym,
            group_by=group_by,
            filters=filters,
            client=client,
        )
    except TradeQueryValidationError as err:
        return create_validation_error_response(str(err))
    except Exception as err:
        logger.error("Real-estate trade query failed: %s", err, exc_info=True)
        raise HTTPException(status_code=500, detail="Real-estate trade query failed") from err


@router.get("/error-codes/{code}", response_model=ErrorCodeResponse)
def describe_error_code(code: str):
    return ErrorCodeResponse(
        code=code,
        message=interpret_error_code(code),
        is_success=code == SUCCESS_RESULT_CODE,
    )
