import unittest
from unittest.mock import MagicMock, call, patch

import requests

from aptdeal.collectors.molit_trade_client import (
    MAX_ATTEMPTS,
    RANGE_CALL_DELAY_SECONDS,
    RETRY_DELAY_SECONDS,
    MolitApiError,
    MolitTradeClient,
    encode_service_key,
    interpret_error_code,
    iter_deal_months,
    validate_api_response,
)
from aptdeal.collectors.trade_parser import xml_to_tree
from aptdeal.config.config_loader import MolitApiConfig
from aptdeal.validators.param_validator import ApiRequestParams

SLEEP_TARGET = "aptdeal.collectors.molit_trade_client.time.sleep"

SAMPLE_XML = """<response><header><resultCode>00</resultCode></header>
<body><items><item><거래금액>10,000</거래금액><년>{year}</년><월>{month}</월><일>1</일>
<아파트>테스트</아파트><전용면적>59.9</전용면적><지역코드>11110</지역코드></item></items></body></response>"""


def _response(status_code: int = 200, text: str = "<response/>") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.encoding = "utf-8"
    return response


def _client(session=None, base_url: str = "http://test-api.com") -> MolitTradeClient:
    config = MolitApiConfig(base_url=base_url, service_key="validServiceKey123456")
    return MolitTradeClient(config, session=session or MagicMock())


class TestBuildUrl(unittest.TestCase):
    def test_build_url_with_defaults(self):
        client = _client()
        url = client.build_url(ApiRequestParams(service_key="testKey", lawd_cd="11110", deal_ymd="202412"))

        self.assertTrue(url.startswith("http://test-api.com/getRTMSDataSvcAptTradeDev?"))
        self.assertIn("serviceKey=testKey", url)
        self.assertIn("LAWD_CD=11110", url)
        self.assertIn("DEAL_YMD=202412", url)
        self.assertIn("numOfRows=100", url)
        self.assertIn("pageNo=1", url)

    def test_build_url_with_explicit_paging(self):
        client = _client(base_url="http://test-api.com/")
        url = client.build_url(
            ApiRequestParams(service_key="testKey", lawd_cd="11110", deal_ymd="202412", num_of_rows=10, page_no=3)
        )

        self.assertIn("http://test-api.com/getRTMSDataSvcAptTradeDev?", url)
        self.assertIn("numOfRows=10", url)
        self.assertIn("pageNo=3", url)

    def test_build_url_encodes_service_key(self):
        url = _client().build_url(ApiRequestParams(service_key="a+b=c", lawd_cd="11110", deal_ymd="202412"))
        self.assertIn("serviceKey=a%2Bb%3Dc", url)

    def test_encode_service_key(self):
        self.assertEqual(encode_service_key("test+key=value"), "test%2Bkey%3Dvalue")
        self.assertEqual(encode_service_key("a/b c"), "a%2Fb%20c")


class TestFetchWithRetry(unittest.TestCase):
    @patch(SLEEP_TARGET)
    def test_success_first_attempt(self, mock_sleep):
        session = MagicMock()
        session.get.return_value = _response()

        response = _client(session).fetch_with_retry("http://test-api.com/x")

        self.assertEqual(response.status_code, 200)
        session.get.assert_called_once()
        mock_sleep.assert_not_called()

    @patch(SLEEP_TARGET)
    def test_retries_then_succeeds(self, mock_sleep):
        session = MagicMock()
        session.get.side_effect = [
            requests.ConnectionError("connection reset"),
            _response(status_code=503),
            _response(text="<ok/>"),
        ]

        response = _client(session).fetch_with_retry("http://test-api.com/x")

        self.assertEqual(response.text, "<ok/>")
        self.assertEqual(session.get.call_count, 3)
        self.assertEqual(mock_sleep.call_args_list, [call(RETRY_DELAY_SECONDS)] * 2)

    @patch(SLEEP_TARGET)
    def test_raises_after_max_attempts(self, mock_sleep):
        session = MagicMock()
        session.get.return_value = _response(status_code=500)

        with self.assertRaises(requests.HTTPError) as ctx:
            _client(session).fetch_with_retry("http://test-api.com/x")

        self.assertIn("500", str(ctx.exception))
        self.assertEqual(session.get.call_count, MAX_ATTEMPTS)
        self.assertEqual(mock_sleep.call_count, MAX_ATTEMPTS - 1)


class TestCallApi(unittest.TestCase):
    PARAMS = ApiRequestParams(service_key="validServiceKey123456", lawd_cd="11110", deal_ymd="202412")

    @patch(SLEEP_TARGET)
    def test_returns_body_text(self, _mock_sleep):
        session = MagicMock()
        session.get.return_value = _response(text="<response/>")

        self.assertEqual(_client(session).call_api(self.PARAMS), "<response/>")

    @patch(SLEEP_TARGET)
    def test_empty_body_is_error(self, mock_sleep):
        session = MagicMock()
        session.get.return_value = _response(text="")

        with self.assertRaises(MolitApiError) as ctx:
            _client(session).call_api(self.PARAMS)

        self.assertIn("Empty response", str(ctx.exception))
        session.get.assert_called_once()
        mock_sleep.assert_not_called()

    @patch(SLEEP_TARGET)
    def test_network_failure_is_wrapped(self, _mock_sleep):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("read timed out")

        with self.assertRaises(MolitApiError) as ctx:
            _client(session).call_api(self.PARAMS)

        self.assertIn("국토교통부 API 호출 실패", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, requests.Timeout)


class TestDateRange(unittest.TestCase):
    def test_iter_deal_months(self):
        self.assertEqual(iter_deal_months("202311", "202402"), ["202311", "202312", "202401", "202402"])
        self.assertEqual(iter_deal_months("202405", "202405"), ["202405"])
        self.assertEqual(iter_deal_months("202406", "202405"), [])
        with self.assertRaises(ValueError):
            iter_deal_months("2024-01", "202402")

    @patch(SLEEP_TARGET)
    def test_failed_month_is_skipped(self, mock_sleep):
        client = _client()

        def fake_call_api(params):
            if params.deal_ymd == "202402":
                raise MolitApiError("국토교통부 API 호출 실패: HTTP error! status: 500")
            return f"xml-{params.deal_ymd}"

        with patch.object(client, "call_api", side_effect=fake_call_api) as mock_call:
            results = client.call_api_for_date_range("11110", "202401", "202403")

        self.assertEqual(results, ["xml-202401", "xml-202403"])
        self.assertEqual([c.args[0].deal_ymd for c in mock_call.call_args_list], ["202401", "202402", "202403"])
        self.assertEqual(mock_sleep.call_args_list, [call(RANGE_CALL_DELAY_SECONDS)] * 2)

    @patch(SLEEP_TARGET)
    def test_failing_month_exhausts_retries_through_session(self, mock_sleep):
        session = MagicMock()

        def fake_get(url, **kwargs):
            if "DEAL_YMD=202402" in url:
                return _response(status_code=500)
            month = url.split("DEAL_YMD=")[1][4:6]
            return _response(text=SAMPLE_XML.format(year="2024", month=str(int(month))))

        session.get.side_effect = fake_get

        with self.assertLogs("aptdeal.collectors.molit_trade_client", level="WARNING") as logs:
            records = _client(session).fetch_trades("11110", "202401", "202403")

        self.assertEqual([r.deal_date for r in records], ["2024-03-01", "2024-01-01"])
        self.assertEqual(session.get.call_count, 1 + MAX_ATTEMPTS + 1)
        self.assertEqual(
            mock_sleep.call_args_list,
            [call(RANGE_CALL_DELAY_SECONDS)]
            + [call(RETRY_DELAY_SECONDS)] * (MAX_ATTEMPTS - 1)
            + [call(RANGE_CALL_DELAY_SECONDS)],
        )
        self.assertTrue(any("202402 데이터 조회 실패" in line for line in logs.output))

    @patch(SLEEP_TARGET)
    def test_uses_service_key_override(self, _mock_sleep):
        client = _client()
        with patch.object(client, "call_api", return_value="<response/>") as mock_call:
            client.call_api_for_date_range("11110", "202401", "202401", service_key="otherServiceKey99")

        self.assertEqual(mock_call.call_args.args[0].service_key, "otherServiceKey99")

    @patch(SLEEP_TARGET)
    def test_fetch_trades_merges_latest_first(self, _mock_sleep):
        client = _client()
        pages = [SAMPLE_XML.format(year="2024", month="1"), SAMPLE_XML.format(year="2024", month="2")]

        with patch.object(client, "call_api_for_date_range", return_value=pages) as mock_range:
            records = client.fetch_trades("11110", "202401", "202402")

        mock_range.assert_called_once_with("11110", "202401", "202402")
        self.assertEqual([r.deal_date for r in records], ["2024-02-01", "2024-01-01"])


class TestResponseEnvelope(unittest.TestCase):
    def test_validate_api_response(self):
        self.assertTrue(validate_api_response({"response": {"header": {"resultCode": "00"}}}))
        self.assertFalse(validate_api_response({"response": {"header": {"resultCode": "99"}}}))
        self.assertFalse(validate_api_response(None))
        self.assertFalse(validate_api_response({}))
        self.assertFalse(validate_api_response({"response": "oops"}))
        self.assertFalse(validate_api_response([1, 2]))

    def test_validate_decoded_xml_tree(self):
        tree = xml_to_tree("<response><header><resultCode>00</resultCode></header></response>")
        self.assertTrue(validate_api_response(tree))

        tree = xml_to_tree("<response><header><resultCode>22</resultCode></header></response>")
        self.assertFalse(validate_api_response(tree))

    def test_interpret_error_code(self):
        self.assertEqual(interpret_error_code("00"), "정상")
        self.assertEqual(interpret_error_code("03"), "데이터 없음")
        self.assertEqual(interpret_error_code("22"), "서비스 요청 제한 횟수 초과")
        self.assertEqual(interpret_error_code("30"), "등록되지 않은 서비스키")
        self.assertEqual(interpret_error_code("99"), "기타 오류")

        unknown = interpret_error_code("55")
        self.assertIn("알 수 없는 오류", unknown)
        self.assertIn("55", unknown)


if __name__ == "__main__":
    unittest.main()
