"""
국토교통부 아파트 매매 실거래 XML 파싱 및 정제 모듈

- XML -> compact tree 변환 (leaf는 {"_text": ...} 형태로 한 번 감싸서 보존)
- response.body.items.item 구조 해석 (단건 item은 1건 리스트로 처리)
- 필드별 문자열 -> 타입 변환 (잘못된 값은 기본값으로 대체, 예외 없음)
- 월별 병합/정렬, 단지별/면적별 그룹화, 검색 필터 적용
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from aptdeal.utils.number_utils import parse_leading_float, parse_leading_int
from aptdeal.validators.param_validator import TradeSearchFilters

logger = logging.getLogger(__name__)

TEXT_KEY = "_text"
MIN_BUILD_YEAR = 1900

# 표준 필드 -> 원천 XML 태그 (구 API 한글 태그 우선, 신규 영문 태그 허용)
FIELD_LABELS: Dict[str, tuple] = {
    "deal_amount": ("거래금액", "dealAmount"),
    "build_year": ("건축년도", "buildYear"),
    "deal_year": ("년", "dealYear"),
    "deal_month": ("월", "dealMonth"),
    "deal_day": ("일", "dealDay"),
    "apartment_name": ("아파트", "aptNm"),
    "exclusive_area": ("전용면적", "excluUseAr"),
    "lot": ("지번", "jibun"),
    "region_code": ("지역코드", "sggCd"),
    "floor": ("층", "floor"),
    "legal_dong": ("법정동", "umdNm"),
    "sigungu": ("시군구",),
    "road_name": ("도로명", "roadNm"),
}

_WHITESPACE_RE = re.compile(r"\s+")


class TradeParseError(Exception):
    """실거래 XML 파싱 오류"""
    pass


class AptTradeRecord(BaseModel):
    """정제된 아파트 매매 거래"""
    deal_amount: int = Field(..., description="거래금액 (만원)")
    build_year: Optional[int] = Field(default=None, description="건축년도")
    deal_date: str = Field(..., description="거래일 (YYYY-MM-DD)")
    apartment_name: str = Field(..., description="아파트명")
    exclusive_area: float = Field(..., description="전용면적 (㎡)")
    lot: str = Field(default="", description="지번")
    region_code: str = Field(..., description="지역코드")
    floor: Optional[int] = Field(default=None, description="층")
    legal_dong: str = Field(default="", description="법정동")
    sigungu: str = Field(default="", description="시군구")
    road_name: str = Field(default="", description="도로명")
    apartment_seq: str = Field(..., description="단지 그룹 키 (지역코드-아파트명-전용면적)")


@dataclass(frozen=True)
class ResponseEnvelope:
    """응답 header/body 메타 정보"""
    result_code: Optional[str] = None
    result_msg: Optional[str] = None
    num_of_rows: Optional[int] = None
    page_no: Optional[int] = None
    total_count: Optional[int] = None


@dataclass(frozen=True)
class DecodedItems:
    items: List[Dict[str, Any]]
    envelope: ResponseEnvelope = field(default_factory=ResponseEnvelope)


@dataclass(frozen=True)
class StructureMismatch:
    reason: str
    envelope: ResponseEnvelope = field(default_factory=ResponseEnvelope)


DecodeResult = Union[DecodedItems, StructureMismatch]


# ============================================
# 필드 파서
# ============================================

def parse_amount(amount_str: Optional[str]) -> int:
    """
    거래금액 문자열을 숫자로 변환 ("12,000" -> 12000)

    빈 값이나 숫자가 아닌 값은 0을 반환합니다.
    """
    if not amount_str or not isinstance(amount_str, str):
        return 0
    amount = parse_leading_int(amount_str.replace(",", "").strip())
    return 0 if amount is None else amount


def parse_build_year(year_str: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """
    건축년도 파싱

    원천 데이터의 0은 '해당 없음'을 뜻하므로 None으로 처리합니다.
    1900년 미만, 올해 초과 값도 None입니다.
    """
    if not year_str or not isinstance(year_str, str):
        return None
    year = parse_leading_int(year_str.strip())
    current_year = (today or date.today()).year
    if year is None or year == 0 or year < MIN_BUILD_YEAR or year > current_year:
        return None
    return year


def parse_floor(floor_str: Optional[str]) -> Optional[int]:
    """층수 파싱 (지하층 음수 허용)"""
    if not floor_str or not isinstance(floor_str, str):
        return None
    return parse_leading_int(floor_str.strip())


def parse_area(area_str: Optional[str]) -> float:
    """전용면적 파싱"""
    if not area_str or not isinstance(area_str, str):
        return 0.0
    area = parse_leading_float(area_str.strip())
    return 0.0 if area is None else area


def format_deal_date(year: Optional[str], month: Optional[str], day: Optional[str]) -> str:
    """
    거래일 생성 (YYYY-MM-DD)

    월/일이 비어 있으면 01로 채웁니다. 년도가 비어 있으면 "-05-10"처럼
    앞 구간이 빈 문자열로 남습니다.
    """
    y = (year or "").strip()
    m = ((month or "").strip() or "1").rjust(2, "0")
    d = ((day or "").strip() or "1").rjust(2, "0")
    return f"{y}-{m}-{d}"


def clean_string(value: Optional[str]) -> str:
    if not value or not isinstance(value, str):
        return ""
    return value.strip()


def generate_apt_seq(region_code: str, apartment_name: str, area: float) -> str:
    """단지 그룹 키 생성 (지역코드-공백제거아파트명-전용면적 소수 2자리)"""
    compact_name = _WHITESPACE_RE.sub("", clean_string(apartment_name))
    if isinstance(area, (int, float)) and math.isfinite(area):
        # 정확한 이진값 기준 반올림 (84.125 -> 84.13)
        area_text = str(Decimal(area).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    else:
        area_text = str(area)
    return f"{region_code}-{compact_name}-{area_text}"


# ============================================
# XML 디코딩
# ============================================

def _new_node(element: ET.Element) -> Dict[str, Any]:
    node: Dict[str, Any] = {}
    if element.text is not None and element.text.strip():
        node[TEXT_KEY] = element.text
    return node


def _element_to_node(root: ET.Element) -> Dict[str, Any]:
    # 깊게 중첩된 문서에서도 재귀 한도에 걸리지 않도록 스택으로 순회
    root_node = _new_node(root)
    stack = [(root, root_node)]
    while stack:
        element, node = stack.pop()
        for child in element:
            child_node = _new_node(child)
            existing = node.get(child.tag)
            if existing is None:
                node[child.tag] = child_node
            elif isinstance(existing, list):
                existing.append(child_node)
            else:
                node[child.tag] = [existing, child_node]
            stack.append((child, child_node))
    return root_node


def xml_to_tree(xml_data: Union[str, bytes]) -> Dict[str, Any]:
    """
    XML 문자열을 compact dict 트리로 변환합니다.

    같은 이름의 형제 태그가 여러 개면 리스트, 하나면 dict로 남습니다.
    속성/주석/선언부는 무시합니다.

    Raises:
        TradeParseError: XML 문법 오류
    """
    try:
        root = ET.fromstring(xml_data)
    except ET.ParseError as e:
        logger.error(f"XML 파싱 오류: {e}")
        raise TradeParseError(f"XML 파싱 실패: {e}") from e
    return {root.tag: _element_to_node(root)}


def _child(node: Any, key: str) -> Optional[Dict[str, Any]]:
    if not isinstance(node, dict):
        return None
    value = node.get(key)
    return value if isinstance(value, dict) else None


def _node_text(node: Any) -> Optional[str]:
    if isinstance(node, str):
        return node
    if isinstance(node, dict):
        text = node.get(TEXT_KEY)
        return text.strip() if isinstance(text, str) else None
    return None


def _read_envelope(tree: Dict[str, Any]) -> ResponseEnvelope:
    response = _child(tree, "response")
    header = _child(response, "header") or {}
    body = _child(response, "body") or {}
    return ResponseEnvelope(
        result_code=_node_text(header.get("resultCode")),
        result_msg=_node_text(header.get("resultMsg")),
        num_of_rows=parse_leading_int(_node_text(body.get("numOfRows"))),
        page_no=parse_leading_int(_node_text(body.get("pageNo"))),
        total_count=parse_leading_int(_node_text(body.get("totalCount"))),
    )


def decode_trade_response(tree: Dict[str, Any]) -> DecodeResult:
    """
    response.body.items.item 경로를 한 번에 해석합니다.

    items가 없으면 StructureMismatch (해당 월 거래 없음), 단건 item은
    1건 리스트로 감쌉니다.
    """
    envelope = _read_envelope(tree)
    response = _child(tree, "response")
    if response is None:
        return StructureMismatch("response 노드가 없습니다.", envelope)
    body = _child(response, "body")
    if body is None:
        return StructureMismatch("response.body 노드가 없습니다.", envelope)
    items = _child(body, "items")
    if items is None:
        return StructureMismatch("response.body.items 노드가 없습니다.", envelope)

    item = items.get("item")
    if isinstance(item, dict):
        return DecodedItems([item], envelope)
    if isinstance(item, list) and item:
        return DecodedItems(list(item), envelope)
    return StructureMismatch("items.item 항목이 없습니다.", envelope)


def read_response_envelope(xml_data: Union[str, bytes]) -> ResponseEnvelope:
    """응답 XML의 결과 코드와 페이지 정보만 읽습니다."""
    return _read_envelope(xml_to_tree(xml_data))


# ============================================
# 정규화
# ============================================

def _field_text(raw_item: Dict[str, Any], field_name: str) -> str:
    for label in FIELD_LABELS[field_name]:
        if label not in raw_item:
            continue
        value = raw_item[label]
        if isinstance(value, list):
            # 같은 태그가 반복된 필드는 값을 특정할 수 없으므로 빈 값으로 처리
            return ""
        if not isinstance(value, dict):
            raise ValueError(f"'{label}' 필드 형식이 올바르지 않습니다: {type(value).__name__}")
        text = value.get(TEXT_KEY, "")
        if not isinstance(text, str):
            raise ValueError(f"'{label}' 필드에 텍스트가 아닌 값이 있습니다.")
        return text
    return ""


def parse_apt_trade_item(raw_item: Dict[str, Any], today: Optional[date] = None) -> AptTradeRecord:
    """원시 item 노드를 AptTradeRecord로 변환합니다."""
    if not isinstance(raw_item, dict):
        raise TypeError(f"item 노드 형식이 올바르지 않습니다: {type(raw_item).__name__}")

    def text(field_name: str) -> str:
        return _field_text(raw_item, field_name)

    apartment_name = clean_string(text("apartment_name"))
    exclusive_area = parse_area(text("exclusive_area"))
    region_code = clean_string(text("region_code"))

    return AptTradeRecord(
        deal_amount=parse_amount(text("deal_amount")),
        build_year=parse_build_year(text("build_year"), today=today),
        deal_date=format_deal_date(text("deal_year"), text("deal_month"), text("deal_day")),
        apartment_name=apartment_name,
        exclusive_area=exclusive_area,
        lot=clean_string(text("lot")),
        region_code=region_code,
        floor=parse_floor(text("floor")),
        legal_dong=clean_string(text("legal_dong")),
        sigungu=clean_string(text("sigungu")),
        road_name=clean_string(text("road_name")),
        apartment_seq=generate_apt_seq(region_code, apartment_name, exclusive_area),
    )


def parse_api_response(xml_data: Union[str, bytes], today: Optional[date] = None) -> List[AptTradeRecord]:
    """
    XML 응답을 파싱하여 정제된 거래 리스트를 반환합니다.

    개별 item 변환 실패는 경고 로그 후 건너뛰고, 나머지는 원천 순서대로 반환합니다.

    Raises:
        TradeParseError: XML 자체를 읽을 수 없을 때
    """
    try:
        tree = xml_to_tree(xml_data)
    except TradeParseError as e:
        raise TradeParseError(f"데이터 파싱 실패: {e}") from e

    decoded = decode_trade_response(tree)
    if isinstance(decoded, StructureMismatch):
        logger.warning("API 응답에 데이터가 없습니다. (%s)", decoded.reason)
        return []

    records: List[AptTradeRecord] = []
    for index, raw_item in enumerate(decoded.items):
        try:
            records.append(parse_apt_trade_item(raw_item, today=today))
        except Exception as e:
            logger.warning("개별 항목 파싱 오류 (index=%s): %s, item=%s", index, e, raw_item)
    return records


def merge_monthly_data(xml_pages: Iterable[Union[str, bytes]], today: Optional[date] = None) -> List[AptTradeRecord]:
    """
    여러 월의 XML 응답을 병합하여 거래일 최신순으로 반환합니다.

    같은 거래일끼리는 병합 순서를 유지합니다 (stable sort).
    """
    all_records: List[AptTradeRecord] = []
    for page_index, xml_data in enumerate(xml_pages):
        try:
            all_records.extend(parse_api_response(xml_data, today=today))
        except TradeParseError as e:
            logger.warning("월별 데이터 파싱 오류 (page=%s): %s", page_index, e)

    return sorted(all_records, key=lambda record: record.deal_date, reverse=True)


def group_by_apartment(records: Iterable[AptTradeRecord]) -> Dict[str, List[AptTradeRecord]]:
    """단지별 그룹화 ("지역코드-아파트명" 키, 최초 등장 순서)"""
    groups: Dict[str, List[AptTradeRecord]] = {}
    for record in records:
        key = f"{record.region_code}-{record.apartment_name}"
        groups.setdefault(key, []).append(record)
    return groups


def group_by_area(records: Iterable[AptTradeRecord]) -> Dict[float, List[AptTradeRecord]]:
    """전용면적별 그룹화 (최초 등장 순서)"""
    groups: Dict[float, List[AptTradeRecord]] = {}
    for record in records:
        groups.setdefault(record.exclusive_area, []).append(record)
    return groups


def _compact(value: str) -> str:
    return _WHITESPACE_RE.sub("", value).casefold()


def filter_trades(records: Iterable[AptTradeRecord], filters: TradeSearchFilters) -> List[AptTradeRecord]:
    """
    검색 필터 적용 (필터는 validate_search_filters로 미리 검증되어 있어야 함)

    키워드는 공백/대소문자를 무시한 아파트명 부분 일치입니다.
    건축년도 조건이 있으면 건축년도가 없는 거래는 제외됩니다.
    """
    keyword = _compact(filters.keyword) if filters.keyword else ""
    has_year_bound = filters.min_build_year is not None or filters.max_build_year is not None

    matched: List[AptTradeRecord] = []
    for record in records:
        if keyword and keyword not in _compact(record.apartment_name):
            continue
        if filters.min_price is not None and record.deal_amount < filters.min_price:
            continue
        if filters.max_price is not None and record.deal_amount > filters.max_price:
            continue
        if filters.min_area is not None and record.exclusive_area < filters.min_area:
            continue
        if filters.max_area is not None and record.exclusive_area > filters.max_area:
            continue
        if has_year_bound:
            if record.build_year is None:
                continue
            if filters.min_build_year is not None and record.build_year < filters.min_build_year:
                continue
            if filters.max_build_year is not None and record.build_year > filters.max_build_year:
                continue
        matched.append(record)
    return matched
