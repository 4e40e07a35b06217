"""
실거래가 데이터 수집/정제 모듈
"""
from aptdeal.collectors.molit_trade_client import (
    MolitApiError,
    MolitTradeClient,
    get_molit_trade_client,
    interpret_error_code,
    validate_api_response,
)
from aptdeal.collectors.trade_parser import (
    AptTradeRecord,
    TradeParseError,
    group_by_apartment,
    group_by_area,
    merge_monthly_data,
    parse_api_response,
)

__all__ = [
    'MolitApiError',
    'MolitTradeClient',
    'get_molit_trade_client',
    'interpret_error_code',
    'validate_api_response',
    'AptTradeRecord',
    'TradeParseError',
    'group_by_apartment',
    'group_by_area',
    'merge_monthly_data',
    'parse_api_response',
]
