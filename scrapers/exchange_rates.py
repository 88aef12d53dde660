"""
汇率 API 客户端
数据源: https://api.exchangerate-api.io/
"""
from loguru import logger

from scrapers.base import BaseClient, ClientError


class ExchangeRateAPIError(ClientError):
    """汇率 API 错误"""


class ExchangeRateClient(BaseClient):
    """汇率数据客户端"""

    BASE_URL = 'https://api.exchangerate-api.io/v4/latest'
    USER_AGENT = 'Lumidex-Currency-Service/1.0'
    error_class = ExchangeRateAPIError

    def __init__(self, base_url=None, session=None, timeout=15):
        super().__init__(base_url or self.BASE_URL, session=session, timeout=timeout)

    def fetch_rates(self, base_currency):
        """
        获取以 base_currency 为基准的汇率

        Returns:
            {'base': 'EUR', 'date': '2024-01-01', 'rates': {'USD': 1.08, ...}}

        Raises:
            ExchangeRateAPIError
        """
        data = self.get_json(base_currency)

        # 部分版本的 API 不返回 success 字段
        if data.get('success') is False:
            error = data.get('error') or {}
            info = error.get('info') if isinstance(error, dict) else error
            raise ExchangeRateAPIError(f"API returned error: {info or 'Unknown error'}", api_error=error)

        rates = data.get('rates')
        if not isinstance(rates, dict):
            raise ExchangeRateAPIError('API response has no rates')

        logger.debug(f"获取 {base_currency} 汇率 {len(rates)} 条")
        return {
            'base': data.get('base') or base_currency,
            'date': data.get('date'),
            'rates': rates,
        }
