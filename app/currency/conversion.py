"""
货币换算 - 带缓存与多级回退的汇率查询
"""
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from flask import current_app, has_app_context
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.currency import rates as rate_store

DEFAULT_CACHE_AGE = 300  # 秒

# 最后的兜底汇率 (粗略值)
APPROXIMATE_RATES = {
    'EUR': {'USD': 1.08, 'GBP': 0.86, 'NOK': 11.80},
    'USD': {'EUR': 0.93, 'GBP': 0.79, 'NOK': 10.90},
    'GBP': {'EUR': 1.16, 'USD': 1.27, 'NOK': 13.70},
    'NOK': {'EUR': 0.085, 'USD': 0.092, 'GBP': 0.073},
}

CROSS_CURRENCIES = ['USD', 'EUR']

CURRENCY_SYMBOLS = {
    'EUR': '€',
    'USD': '$',
    'GBP': '£',
    'NOK': 'kr',
}


class CurrencyConversionError(Exception):
    """没有可用汇率"""

    def __init__(self, message, from_currency, to_currency, original_amount=0):
        super().__init__(message)
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.original_amount = original_amount


@dataclass
class ConversionResult:
    original_amount: float
    converted_amount: float
    from_currency: str
    to_currency: str
    exchange_rate: float
    converted_at: datetime = field(default_factory=datetime.utcnow)
    is_approximate: bool = False
    fallback_used: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['converted_at'] = self.converted_at.isoformat()
        return data


@dataclass
class _Rate:
    value: float
    is_approximate: bool = False
    fallback_used: Optional[str] = None


def _usable(rate):
    """非正数汇率视为缺失"""
    return rate is not None and rate > 0


class CurrencyConverter:
    """
    汇率查询顺序:
    缓存 -> 数据库直接汇率 -> 反向汇率取倒数 -> 经 USD/EUR 交叉换算 -> 近似汇率
    """

    def __init__(self, rate_lookup: Optional[Callable] = None, default_cache_age: Optional[int] = None):
        self._rate_lookup = rate_lookup
        self._default_cache_age = default_cache_age
        self._cache: Dict[str, tuple] = {}

    @property
    def default_cache_age(self):
        """未指定时读取 RATE_CACHE_SECONDS"""
        if self._default_cache_age is not None:
            return self._default_cache_age
        if has_app_context():
            return current_app.config.get('RATE_CACHE_SECONDS', DEFAULT_CACHE_AGE)
        return DEFAULT_CACHE_AGE

    def lookup(self, from_currency, to_currency):
        if self._rate_lookup is not None:
            return self._rate_lookup(from_currency, to_currency)
        return rate_store.get_latest_rate(from_currency, to_currency)

    def convert(self, amount, from_currency, to_currency, allow_approximate=True,
                use_cache=True, max_cache_age=None) -> ConversionResult:
        """换算金额，失败时返回原金额与原货币并附带 error"""
        if from_currency == to_currency:
            return ConversionResult(
                original_amount=amount,
                converted_amount=amount,
                from_currency=from_currency,
                to_currency=to_currency,
                exchange_rate=1.0
            )

        try:
            rate = self._get_rate(from_currency, to_currency, allow_approximate, use_cache, max_cache_age)
        except CurrencyConversionError as e:
            logger.warning(str(e))
            return ConversionResult(
                original_amount=amount,
                converted_amount=amount,
                from_currency=from_currency,
                to_currency=from_currency,
                exchange_rate=1.0,
                error=str(e)
            )

        return ConversionResult(
            original_amount=amount,
            converted_amount=round(amount * rate.value, 2),
            from_currency=from_currency,
            to_currency=to_currency,
            exchange_rate=rate.value,
            is_approximate=rate.is_approximate,
            fallback_used=rate.fallback_used
        )

    def _get_rate(self, from_currency, to_currency, allow_approximate, use_cache, max_cache_age):
        key = f"{from_currency}-{to_currency}"
        max_age = self.default_cache_age if max_cache_age is None else max_cache_age

        if use_cache and key in self._cache:
            cached_rate, cached_at = self._cache[key]
            # 不允许近似汇率时跳过缓存的近似值
            fresh = time.time() - cached_at < max_age
            if fresh and not (cached_rate.is_approximate and not allow_approximate):
                return cached_rate

        rate = None
        try:
            rate = self._stored_rate(from_currency, to_currency)
        except SQLAlchemyError as e:
            logger.warning(f"数据库汇率查询失败: {e}")

        if rate is None and allow_approximate:
            approx = APPROXIMATE_RATES.get(from_currency, {}).get(to_currency)
            if approx:
                logger.info(f"使用近似汇率: {from_currency} -> {to_currency} = {approx}")
                rate = _Rate(approx, is_approximate=True, fallback_used='approximate_rate')

        if rate is None:
            raise CurrencyConversionError(
                f"No exchange rate available for {from_currency} to {to_currency}",
                from_currency, to_currency
            )

        if use_cache:
            self._cache[key] = (rate, time.time())
        return rate

    def _stored_rate(self, from_currency, to_currency):
        direct = self.lookup(from_currency, to_currency)
        if _usable(direct):
            return _Rate(direct)

        inverse = self.lookup(to_currency, from_currency)
        if _usable(inverse):
            return _Rate(1 / inverse, fallback_used='inverse_calculation')

        for middle in CROSS_CURRENCIES:
            if middle in (from_currency, to_currency):
                continue
            first = self.lookup(from_currency, middle)
            second = self.lookup(middle, to_currency)
            if _usable(first) and _usable(second):
                return _Rate(first * second, fallback_used='cross_currency')

        return None

    def convert_batch(self, conversions, **options) -> List[ConversionResult]:
        """conversions: [(amount, from, to), ...]"""
        return [self.convert(amount, from_c, to_c, **options) for amount, from_c, to_c in conversions]

    def clear_cache(self):
        self._cache.clear()

    def cache_stats(self):
        return {
            'size': len(self._cache),
            'keys': list(self._cache.keys())
        }

    def can_convert(self, from_currency, to_currency):
        if from_currency == to_currency:
            return True
        try:
            self._get_rate(from_currency, to_currency, True, True, None)
            return True
        except CurrencyConversionError:
            return False


# 全局实例
currency_converter = CurrencyConverter()


def format_converted_price(result: ConversionResult) -> str:
    """格式化显示，近似汇率前加 ~"""
    symbol = CURRENCY_SYMBOLS.get(result.to_currency)
    amount = f"{result.converted_amount:,.2f}"

    if symbol is None:
        text = f"{amount} {result.to_currency}"
    elif result.to_currency == 'NOK':
        text = f"{amount} {symbol}"
    else:
        text = f"{symbol}{amount}"

    return f"~{text}" if result.is_approximate else text
