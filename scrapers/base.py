"""
外部 API 客户端基类 - 通用逻辑
"""
import time
import requests
from loguru import logger

# 配置日志
logger.add("logs/clients_{time}.log", rotation="10 MB", retention="7 days")


class ClientError(Exception):
    """外部 API 请求失败"""

    def __init__(self, message, status_code=None, api_error=None):
        super().__init__(message)
        self.status_code = status_code
        self.api_error = api_error


class BaseClient:
    """API 客户端基类"""

    USER_AGENT = 'Lumidex/1.0'
    error_class = ClientError

    def __init__(self, base_url, session=None, timeout=30, delay=0.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.delay = delay
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': self.USER_AGENT
        })

    def get_json(self, path, params=None):
        """
        GET 请求并解析 JSON

        Args:
            path: 相对路径 (如 /sets)
            params: 查询参数

        Returns:
            解析后的 JSON

        Raises:
            error_class: 网络错误、非 2xx 状态码或无法解析的响应
        """
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"请求失败 {url}: {e}")
            raise self.error_class(f"Request to {url} failed: {e}") from e

        if not response.ok:
            logger.error(f"请求失败 {url}: HTTP {response.status_code}")
            raise self.error_class(
                f"API request failed with status {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise self.error_class(f"Invalid JSON from {url}") from e

        if self.delay:
            time.sleep(self.delay)  # 礼貌延迟

        return data
