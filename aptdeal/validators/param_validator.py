"""
입력값 검증 모듈
- 사용자 검색 조건 및 국토교통부 API 요청 파라미터 검증
- 검증 실패는 예외가 아닌 ValidationResult로 반환
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from aptdeal.utils.number_utils import is_number, parse_leading_float, parse_leading_int

PLACEHOLDER_SERVICE_KEY = "YOUR_ENCODED_SERVICE_KEY_HERE"

MIN_DEAL_YEAR = 2000
MIN_BUILD_YEAR = 1900
MAX_PAGE_VALUE = 1000
MAX_EXCLUSIVE_AREA = 1000

_REGION_CODE_RE = re.compile(r"[0-9]{5}")
_DEAL_YMD_RE = re.compile(r"[0-9]{6}")


@dataclass(frozen=True)
class ValidationResult:
    """검증 결과"""
    is_valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)


@dataclass
class ApiRequestParams:
    """국토교통부 실거래가 API 요청 파라미터 (생성 시점에는 검증하지 않음)"""
    service_key: str
    lawd_cd: str
    deal_ymd: str
    num_of_rows: Optional[int] = None
    page_no: Optional[int] = None


@dataclass
class TradeSearchFilters:
    """검색 필터 조건 (가격 단위: 만원, 면적 단위: ㎡)"""
    keyword: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    min_build_year: Optional[int] = None
    max_build_year: Optional[int] = None


def _current_year(today: Optional[date]) -> int:
    return (today or date.today()).year


def validate_region_code(region_code: Any) -> ValidationResult:
    """지역코드 검증 (5자리 숫자)"""
    if not region_code:
        return ValidationResult.fail("지역코드가 필요합니다.")
    if not isinstance(region_code, str):
        return ValidationResult.fail("지역코드는 문자열이어야 합니다.")

    if not _REGION_CODE_RE.fullmatch(region_code.strip()):
        return ValidationResult.fail("지역코드는 5자리 숫자여야 합니다.")
    return ValidationResult.ok()


def validate_deal_year_month(deal_ymd: Any, today: Optional[date] = None) -> ValidationResult:
    """계약년월 검증 (YYYYMM 형식, 2000년 ~ 올해)"""
    if not deal_ymd:
        return ValidationResult.fail("계약년월이 필요합니다.")
    if not isinstance(deal_ymd, str):
        return ValidationResult.fail("계약년월은 문자열이어야 합니다.")

    trimmed = deal_ymd.strip()
    if not _DEAL_YMD_RE.fullmatch(trimmed):
        return ValidationResult.fail("계약년월은 YYYYMM 형식의 6자리 숫자여야 합니다.")

    year = int(trimmed[:4])
    month = int(trimmed[4:6])
    current_year = _current_year(today)

    if year < MIN_DEAL_YEAR or year > current_year:
        return ValidationResult.fail(
            f"년도는 {MIN_DEAL_YEAR}년부터 {current_year}년까지 입력 가능합니다."
        )
    if month < 1 or month > 12:
        return ValidationResult.fail("월은 01부터 12까지 입력 가능합니다.")
    return ValidationResult.ok()


def validate_service_key(service_key: Any) -> ValidationResult:
    """서비스 키 검증"""
    if not service_key:
        return ValidationResult.fail("서비스 키가 필요합니다.")
    if not isinstance(service_key, str):
        return ValidationResult.fail("서비스 키는 문자열이어야 합니다.")

    trimmed = service_key.strip()
    if len(trimmed) < 10:
        return ValidationResult.fail("유효하지 않은 서비스 키입니다.")
    # .env 예시 값이 그대로 남아 있는 경우
    if trimmed == PLACEHOLDER_SERVICE_KEY:
        return ValidationResult.fail("실제 서비스 키를 설정해주세요.")
    return ValidationResult.ok()


def _validate_bounded_int(value: Any, label: str) -> ValidationResult:
    if isinstance(value, str):
        number = parse_leading_int(value)
    elif is_number(value):
        number = value
    else:
        number = None

    if number is None:
        return ValidationResult.fail(f"{label}는 숫자여야 합니다.")
    if number != int(number):
        return ValidationResult.fail(f"{label}는 정수여야 합니다.")
    if number < 1:
        return ValidationResult.fail(f"{label}는 1 이상이어야 합니다.")
    if number > MAX_PAGE_VALUE:
        return ValidationResult.fail(f"{label}는 {MAX_PAGE_VALUE} 이하여야 합니다.")
    return ValidationResult.ok()


def validate_page_number(page_no: Any) -> ValidationResult:
    """페이지 번호 검증 (1 ~ 1000)"""
    return _validate_bounded_int(page_no, "페이지 번호")


def validate_num_of_rows(num_of_rows: Any) -> ValidationResult:
    """결과 수 검증 (1 ~ 1000)"""
    return _validate_bounded_int(num_of_rows, "결과 수")


def validate_apartment_name(apt_name: Any) -> ValidationResult:
    """아파트명 검증 (2 ~ 50자)"""
    if not apt_name:
        return ValidationResult.fail("아파트명이 필요합니다.")
    if not isinstance(apt_name, str):
        return ValidationResult.fail("아파트명은 문자열이어야 합니다.")

    trimmed = apt_name.strip()
    if len(trimmed) < 2:
        return ValidationResult.fail("아파트명은 2글자 이상이어야 합니다.")
    if len(trimmed) > 50:
        return ValidationResult.fail("아파트명은 50글자 이하여야 합니다.")
    return ValidationResult.ok()


def validate_exclusive_area(area: Any) -> ValidationResult:
    """전용면적 검증 (0 초과 1000㎡ 이하)"""
    area_value = parse_leading_float(area) if isinstance(area, str) else (area if is_number(area) else None)

    if area_value is None:
        return ValidationResult.fail("전용면적은 숫자여야 합니다.")
    if area_value <= 0:
        return ValidationResult.fail("전용면적은 0보다 커야 합니다.")
    if area_value > MAX_EXCLUSIVE_AREA:
        return ValidationResult.fail(f"전용면적은 {MAX_EXCLUSIVE_AREA}㎡ 이하여야 합니다.")
    return ValidationResult.ok()


def validate_price_range(
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> ValidationResult:
    """가격 범위 검증 (만원 단위)"""
    for value, label in ((min_price, "최소 가격"), (max_price, "최대 가격")):
        if value is None:
            continue
        if not is_number(value):
            return ValidationResult.fail(f"{label}은 숫자여야 합니다.")
        if value < 0:
            return ValidationResult.fail(f"{label}은 0 이상이어야 합니다.")

    if min_price is not None and max_price is not None and min_price > max_price:
        return ValidationResult.fail("최소 가격은 최대 가격보다 작거나 같아야 합니다.")
    return ValidationResult.ok()


def validate_area_range(
    min_area: Optional[float] = None,
    max_area: Optional[float] = None,
) -> ValidationResult:
    """면적 범위 검증"""
    if min_area is not None:
        min_result = validate_exclusive_area(min_area)
        if not min_result.is_valid:
            return ValidationResult.fail(f"최소 면적: {min_result.error}")

    if max_area is not None:
        max_result = validate_exclusive_area(max_area)
        if not max_result.is_valid:
            return ValidationResult.fail(f"최대 면적: {max_result.error}")

    if min_area is not None and max_area is not None:
        if parse_leading_float(min_area) > parse_leading_float(max_area):
            return ValidationResult.fail("최소 면적은 최대 면적보다 작거나 같아야 합니다.")
    return ValidationResult.ok()


def validate_build_year_range(
    min_year: Optional[int] = None,
    max_year: Optional[int] = None,
    today: Optional[date] = None,
) -> ValidationResult:
    """건축년도 범위 검증 (1900년 ~ 올해)"""
    current_year = _current_year(today)

    for value, label in ((min_year, "최소 건축년도"), (max_year, "최대 건축년도")):
        if value is None:
            continue
        if not is_number(value):
            return ValidationResult.fail(f"{label}는 숫자여야 합니다.")
        if value < MIN_BUILD_YEAR or value > current_year:
            return ValidationResult.fail(
                f"{label}는 {MIN_BUILD_YEAR}년부터 {current_year}년까지 입력 가능합니다."
            )

    if min_year is not None and max_year is not None and min_year > max_year:
        return ValidationResult.fail("최소 건축년도는 최대 건축년도보다 작거나 같아야 합니다.")
    return ValidationResult.ok()


def validate_search_keyword(keyword: Any) -> ValidationResult:
    """검색 키워드 검증 (1 ~ 50자)"""
    if not keyword:
        return ValidationResult.fail("검색 키워드가 필요합니다.")
    if not isinstance(keyword, str):
        return ValidationResult.fail("검색 키워드는 문자열이어야 합니다.")

    trimmed = keyword.strip()
    if len(trimmed) < 1:
        return ValidationResult.fail("검색 키워드는 1글자 이상이어야 합니다.")
    if len(trimmed) > 50:
        return ValidationResult.fail("검색 키워드는 50글자 이하여야 합니다.")
    return ValidationResult.ok()


def validate_api_params(params: ApiRequestParams, today: Optional[date] = None) -> ValidationResult:
    """
    API 요청 파라미터 종합 검증

    서비스 키 -> 지역코드 -> 계약년월 -> 결과 수 -> 페이지 번호 순서로 검사하고
    처음 실패한 결과를 그대로 반환합니다.
    """
    checks = (
        lambda: validate_service_key(params.service_key),
        lambda: validate_region_code(params.lawd_cd),
        lambda: validate_deal_year_month(params.deal_ymd, today=today),
        lambda: validate_num_of_rows(params.num_of_rows) if params.num_of_rows is not None else None,
        lambda: validate_page_number(params.page_no) if params.page_no is not None else None,
    )
    for check in checks:
        result = check()
        if result is not None and not result.is_valid:
            return result
    return ValidationResult.ok()


def validate_search_filters(filters: TradeSearchFilters, today: Optional[date] = None) -> ValidationResult:
    """검색 필터 종합 검증 (키워드 -> 가격 -> 면적 -> 건축년도)"""
    if filters.keyword is not None:
        keyword_result = validate_search_keyword(filters.keyword)
        if not keyword_result.is_valid:
            return keyword_result

    for result in (
        validate_price_range(filters.min_price, filters.max_price),
        validate_area_range(filters.min_area, filters.max_area),
        validate_build_year_range(filters.min_build_year, filters.max_build_year, today=today),
    ):
        if not result.is_valid:
            return result
    return ValidationResult.ok()
