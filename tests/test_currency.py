"""
货币换算与汇率服务测试 (不请求网络)
"""
from datetime import date

import pytest
from app import create_app, db
from app.models import ExchangeRate
from app.currency.conversion import (
    CurrencyConverter, ConversionResult, currency_converter, format_converted_price
)
from app.currency.rates import (
    ExchangeRateService, get_latest_rate, get_latest_rates_for_currency, store_rates
)
from scrapers.exchange_rates import ExchangeRateAPIError


@pytest.fixture
def app():
    """创建测试应用"""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        currency_converter.clear_cache()
        yield app
        db.drop_all()


def make_converter(rates):
    """rates: {(from, to): rate}，记录查询次数"""
    calls = []

    def lookup(from_currency, to_currency):
        calls.append((from_currency, to_currency))
        return rates.get((from_currency, to_currency))

    converter = CurrencyConverter(rate_lookup=lookup)
    converter.calls = calls
    return converter


class FakeRateClient:
    """汇率 API 替身"""

    RATES = {
        'EUR': {'USD': 1.08, 'GBP': 0.85, 'NOK': 11.5, 'JPY': 160.0},
        'USD': {'EUR': 0.92, 'GBP': 0.79, 'NOK': 10.6},
    }

    def __init__(self, fail_for=()):
        self.fail_for = fail_for

    def fetch_rates(self, base_currency):
        if base_currency in self.fail_for:
            raise ExchangeRateAPIError('API request failed with status 503', status_code=503)
        return {'base': base_currency, 'date': '2024-05-01', 'rates': self.RATES[base_currency]}


class TestCurrencyConverter:
    """换算回退链"""

    def test_same_currency(self):
        result = make_converter({}).convert(12.5, 'EUR', 'EUR')
        assert result.converted_amount == 12.5
        assert result.exchange_rate == 1.0

    def test_direct_rate(self):
        result = make_converter({('EUR', 'USD'): 1.1}).convert(10, 'EUR', 'USD')

        assert result.converted_amount == 11.0
        assert result.fallback_used is None
        assert not result.is_approximate

    def test_inverse_rate(self):
        result = make_converter({('EUR', 'USD'): 1.25}).convert(10, 'USD', 'EUR')

        assert result.converted_amount == 8.0
        assert result.fallback_used == 'inverse_calculation'

    def test_cross_rate(self):
        """经 USD 交叉换算"""
        converter = make_converter({('GBP', 'USD'): 1.25, ('USD', 'NOK'): 10.0})
        result = converter.convert(2, 'GBP', 'NOK')

        assert result.converted_amount == 25.0
        assert result.fallback_used == 'cross_currency'

    def test_approximate_rate(self):
        result = make_converter({}).convert(10, 'EUR', 'USD')

        assert result.converted_amount == 10.8
        assert result.is_approximate
        assert result.fallback_used == 'approximate_rate'

    def test_no_rate_returns_original_amount(self):
        result = make_converter({}).convert(10, 'EUR', 'USD', allow_approximate=False)

        assert result.converted_amount == 10
        assert result.to_currency == 'EUR'
        assert result.error == 'No exchange rate available for EUR to USD'

    def test_cached_approximate_rate_not_reused_when_disallowed(self):
        converter = make_converter({})
        first = converter.convert(10, 'EUR', 'USD')
        second = converter.convert(10, 'EUR', 'USD', allow_approximate=False)

        assert first.is_approximate
        assert second.error == 'No exchange rate available for EUR to USD'
        assert second.converted_amount == 10
        assert not second.is_approximate

    def test_cached_approximate_rate_replaced_by_stored_rate(self):
        rates = {}
        converter = make_converter(rates)
        converter.convert(10, 'EUR', 'USD')

        rates[('EUR', 'USD')] = 1.2
        result = converter.convert(10, 'EUR', 'USD', allow_approximate=False)

        assert result.converted_amount == 12.0
        assert not result.is_approximate
        assert converter.convert(10, 'EUR', 'USD').exchange_rate == 1.2

    @pytest.mark.parametrize('bad_rate', [0.0, -1.5])
    def test_non_positive_stored_rate_is_missing(self, bad_rate):
        result = make_converter({('EUR', 'USD'): bad_rate}).convert(10, 'EUR', 'USD', allow_approximate=False)
        assert result.error == 'No exchange rate available for EUR to USD'

        # 反向汇率仍可用
        converter = make_converter({('EUR', 'USD'): bad_rate, ('USD', 'EUR'): 0.8})
        result = converter.convert(10, 'EUR', 'USD')
        assert result.converted_amount == 12.5
        assert result.fallback_used == 'inverse_calculation'

    def test_rounding(self):
        result = make_converter({('EUR', 'NOK'): 11.4567}).convert(3.33, 'EUR', 'NOK')
        assert result.converted_amount == 38.15

    def test_cache(self):
        converter = make_converter({('EUR', 'USD'): 1.1})
        converter.convert(1, 'EUR', 'USD')
        converter.convert(2, 'EUR', 'USD')
        assert converter.calls == [('EUR', 'USD')]
        assert converter.cache_stats() == {'size': 1, 'keys': ['EUR-USD']}

        # 过期后重新查询
        converter.convert(3, 'EUR', 'USD', max_cache_age=0)
        assert len(converter.calls) == 2

        converter.clear_cache()
        assert converter.cache_stats()['size'] == 0

    def test_cache_age_from_config(self, app):
        app.config['RATE_CACHE_SECONDS'] = 0
        converter = make_converter({('EUR', 'USD'): 1.1})

        assert converter.default_cache_age == 0
        converter.convert(1, 'EUR', 'USD')
        converter.convert(1, 'EUR', 'USD')
        assert len(converter.calls) == 2

        assert CurrencyConverter(default_cache_age=60).default_cache_age == 60

    def test_default_cache_age_without_app(self):
        assert make_converter({}).default_cache_age == 300

    def test_convert_batch(self):
        converter = make_converter({('EUR', 'USD'): 2.0})
        results = converter.convert_batch([(1, 'EUR', 'USD'), (5, 'USD', 'USD')])
        assert [r.converted_amount for r in results] == [2.0, 5]

    def test_can_convert(self):
        converter = make_converter({})
        assert converter.can_convert('NOK', 'NOK')
        assert converter.can_convert('EUR', 'GBP')
        assert not converter.can_convert('EUR', 'JPY')

    def test_to_dict(self):
        data = make_converter({('EUR', 'USD'): 1.1}).convert(10, 'EUR', 'USD').to_dict()
        assert data['converted_amount'] == 11.0
        assert isinstance(data['converted_at'], str)


class TestFormatting:

    @pytest.mark.parametrize('currency, approximate, expected', [
        ('EUR', False, '€1,234.50'),
        ('USD', True, '~$1,234.50'),
        ('GBP', False, '£1,234.50'),
        ('NOK', False, '1,234.50 kr'),
        ('JPY', False, '1,234.50 JPY'),
    ])
    def test_format(self, currency, approximate, expected):
        result = ConversionResult(
            original_amount=1,
            converted_amount=1234.5,
            from_currency='EUR',
            to_currency=currency,
            exchange_rate=1.0,
            is_approximate=approximate
        )
        assert format_converted_price(result) == expected


class TestRateStore:
    """数据库中的汇率"""

    def test_store_and_lookup(self, app):
        count = store_rates([
            {'from_currency': 'EUR', 'to_currency': 'USD', 'rate': 1.07, 'rate_date': '2024-04-30'},
            {'from_currency': 'EUR', 'to_currency': 'USD', 'rate': 1.08, 'rate_date': '2024-05-01'},
            {'from_currency': 'EUR', 'to_currency': 'GBP', 'rate': 0.85, 'rate_date': '2024-05-01'},
        ])

        assert count == 3
        assert get_latest_rate('EUR', 'USD') == 1.08
        assert get_latest_rate('USD', 'EUR') is None
        assert get_latest_rate('NOK', 'NOK') == 1.0
        assert get_latest_rates_for_currency('EUR') == {'USD': 1.08, 'GBP': 0.85, 'EUR': 1.0}

    def test_store_same_day_updates(self, app):
        store_rates([{'from_currency': 'EUR', 'to_currency': 'USD', 'rate': 1.07, 'rate_date': '2024-05-01'}])
        store_rates([{'from_currency': 'EUR', 'to_currency': 'USD', 'rate': 1.09, 'rate_date': '2024-05-01'}])

        assert ExchangeRate.query.count() == 1
        assert get_latest_rate('EUR', 'USD') == 1.09

    def test_global_converter_uses_database(self, app):
        db.session.add(ExchangeRate(from_currency='USD', to_currency='EUR', rate=0.9, rate_date=date(2024, 5, 1)))
        db.session.commit()

        result = currency_converter.convert(10, 'USD', 'EUR')
        assert result.converted_amount == 9.0
        assert not result.is_approximate

        # 反向汇率
        result = currency_converter.convert(9, 'EUR', 'USD')
        assert result.converted_amount == 10.0
        assert result.fallback_used == 'inverse_calculation'


class TestExchangeRateService:
    """汇率更新任务"""

    def test_convert_to_records(self, app):
        service = ExchangeRateService(client=FakeRateClient())
        records = service.convert_to_records('EUR', FakeRateClient.RATES['EUR'], '2024-05-01')

        # JPY 不在支持列表中
        assert sorted(r['to_currency'] for r in records) == ['GBP', 'NOK', 'USD']

    def test_update_all_rates(self, app):
        result = ExchangeRateService(client=FakeRateClient()).update_all_rates()

        assert result == {'success': True, 'updatedRates': 6, 'errors': []}
        assert get_latest_rate('USD', 'NOK') == 10.6

    def test_partial_failure(self, app):
        result = ExchangeRateService(client=FakeRateClient(fail_for=('USD',))).update_all_rates()

        assert result['success'] is False
        assert result['updatedRates'] == 3
        assert result['errors'][0].startswith('Failed to update rates for USD')

    def test_run_update_job_clears_cache(self, app):
        currency_converter.convert(1, 'EUR', 'USD')
        assert currency_converter.cache_stats()['size'] == 1

        result = ExchangeRateService(client=FakeRateClient()).run_update_job()

        assert result['success']
        assert result['details']['fetchedCurrencies'] == ['EUR', 'USD']
        assert result['details']['cacheCleared'] is True
        assert currency_converter.cache_stats()['size'] == 0

    def test_health_check(self, app):
        service = ExchangeRateService(client=FakeRateClient())
        health = service.health_check()
        assert health['healthy'] is False
        assert health['databaseStatus']['error'] == 'No exchange rates found'

        service.update_all_rates()
        health = service.health_check()
        assert health['healthy'] is True
        assert health['latestRates'] == {'count': 4, 'lastUpdated': '2024-05-01'}

    def test_health_check_api_down(self, app):
        service = ExchangeRateService(client=FakeRateClient(fail_for=('EUR',)))
        health = service.health_check()

        assert health['apiStatus']['healthy'] is False
        assert 'status 503' in health['apiStatus']['error']
