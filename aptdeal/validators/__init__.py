"""
입력값 검증 모듈
"""
from .param_validator import (
    ApiRequestParams,
    TradeSearchFilters,
    ValidationResult,
    validate_api_params,
    validate_apartment_name,
    validate_area_range,
    validate_build_year_range,
    validate_deal_year_month,
    validate_exclusive_area,
    validate_num_of_rows,
    validate_page_number,
    validate_price_range,
    validate_region_code,
    validate_search_filters,
    validate_search_keyword,
    validate_service_key,
)

__all__ = [
    'ApiRequestParams',
    'TradeSearchFilters',
    'ValidationResult',
    'validate_api_params',
    'validate_apartment_name',
    'validate_area_range',
    'validate_build_year_range',
    'validate_deal_year_month',
    'validate_exclusive_area',
    'validate_num_of_rows',
    'validate_page_number',
    'validate_price_range',
    'validate_region_code',
    'validate_search_filters',
    'validate_search_keyword',
    'validate_service_key',
]
