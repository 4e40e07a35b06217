import unittest
from unittest.mock import patch

from aptdeal.config.config_loader import ConfigLoader, MolitApiConfig


class TestConfigLoader(unittest.TestCase):
    def test_load_from_mapping(self):
        loader = ConfigLoader(environ={
            "MOLIT_API_BASE_URL": "https://apis.data.go.kr/1613000/RTMSDataSvcAptTradeDev/",
            "MOLIT_API_KEY": "  validServiceKey123456 ",
            "MOLIT_API_TIMEOUT": "10",
        })

        config = loader.load()

        self.assertEqual(config.base_url, "https://apis.data.go.kr/1613000/RTMSDataSvcAptTradeDev")
        self.assertEqual(config.service_key, "validServiceKey123456")
        self.assertEqual(config.timeout_seconds, 10.0)

    def test_missing_values_raise(self):
        with self.assertRaises(ValueError) as ctx:
            ConfigLoader(environ={"MOLIT_API_KEY": "validServiceKey123456"}).load()
        self.assertIn("MOLIT_API_BASE_URL", str(ctx.exception))

        with self.assertRaises(ValueError) as ctx:
            ConfigLoader(environ={"MOLIT_API_BASE_URL": "http://test-api.com"}).load()
        self.assertIn("MOLIT_API_KEY", str(ctx.exception))

    def test_invalid_timeout_raises(self):
        loader = ConfigLoader(environ={
            "MOLIT_API_BASE_URL": "http://test-api.com",
            "MOLIT_API_KEY": "validServiceKey123456",
            "MOLIT_API_TIMEOUT": "abc",
        })
        with self.assertRaises(ValueError):
            loader.load()

    def test_get_config_is_cached(self):
        loader = ConfigLoader(environ={
            "MOLIT_API_BASE_URL": "http://test-api.com",
            "MOLIT_API_KEY": "validServiceKey123456",
        })
        self.assertIs(loader.get_config(), loader.get_config())
        self.assertIsNot(loader.get_config(), loader.reload())

    def test_reads_process_environment_when_no_mapping(self):
        env = {"MOLIT_API_BASE_URL": "http://env-api.com", "MOLIT_API_KEY": "envServiceKey12345"}
        with patch.dict("os.environ", env, clear=True), patch(
            "aptdeal.config.config_loader.load_dotenv"
        ) as mock_load_dotenv:
            config = ConfigLoader().load()

        mock_load_dotenv.assert_called_once()
        self.assertEqual(config.base_url, "http://env-api.com")

    def test_model_rejects_blank_base_url(self):
        with self.assertRaises(ValueError):
            MolitApiConfig(base_url=" / ", service_key="validServiceKey123456")


if __name__ == "__main__":
    unittest.main()
