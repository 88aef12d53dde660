"""
汇率服务 - 拉取外部汇率并存入数据库
"""
import time
from datetime import date, datetime

from flask import current_app
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import ExchangeRate
from scrapers.exchange_rates import ExchangeRateClient, ExchangeRateAPIError

# 价格只以 EUR / USD 存储，所以只需要这两个基准
BASE_CURRENCIES = ['EUR', 'USD']


def _parse_rate_date(value):
    if isinstance(value, date):
        return value
    if value:
        try:
            return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
        except ValueError:
            logger.warning(f"无法解析汇率日期: {value}")
    return date.today()


def get_latest_rate(from_currency, to_currency):
    """最新汇率，不存在返回 None"""
    if from_currency == to_currency:
        return 1.0

    row = ExchangeRate.query.filter_by(
        from_currency=from_currency,
        to_currency=to_currency
    ).order_by(ExchangeRate.rate_date.desc(), ExchangeRate.updated_at.desc()).first()

    return row.rate if row else None


def get_latest_rates_for_currency(base_currency):
    """{目标货币: 最新汇率}，总是包含 base: 1"""
    rows = ExchangeRate.query.filter_by(from_currency=base_currency) \
        .order_by(ExchangeRate.rate_date.desc(), ExchangeRate.updated_at.desc()).all()

    rates = {}
    for row in rows:
        if row.to_currency not in rates:
            rates[row.to_currency] = row.rate

    rates[base_currency] = 1.0
    return rates


def store_rates(records):
    """
    按 (from, to, rate_date) 写入汇率

    Args:
        records: [{'from_currency', 'to_currency', 'rate', 'rate_date'}]

    Returns:
        写入条数
    """
    count = 0
    for record in records:
        rate_date = _parse_rate_date(record.get('rate_date'))
        row = ExchangeRate.query.filter_by(
            from_currency=record['from_currency'],
            to_currency=record['to_currency'],
            rate_date=rate_date
        ).first()

        if row:
            row.rate = record['rate']
        else:
            db.session.add(ExchangeRate(
                from_currency=record['from_currency'],
                to_currency=record['to_currency'],
                rate=record['rate'],
                rate_date=rate_date
            ))
        count += 1

    db.session.commit()
    return count


class ExchangeRateService:
    """汇率更新任务"""

    def __init__(self, client=None, supported_currencies=None):
        self._client = client
        self._supported = supported_currencies

    @property
    def client(self):
        if self._client is None:
            self._client = ExchangeRateClient(base_url=current_app.config['EXCHANGE_RATE_API_URL'])
        return self._client

    @property
    def supported_currencies(self):
        if self._supported is None:
            return current_app.config['SUPPORTED_CURRENCIES']
        return self._supported

    def convert_to_records(self, base_currency, rates, rate_date):
        """只保留支持的目标货币"""
        records = []
        for target in self.supported_currencies:
            if target == base_currency:
                continue
            rate = rates.get(target)
            if rate:
                records.append({
                    'from_currency': base_currency,
                    'to_currency': target,
                    'rate': float(rate),
                    'rate_date': rate_date
                })
        return records

    def update_all_rates(self):
        """
        拉取 EUR 与 USD 的汇率并入库

        Returns:
            {'success', 'updatedRates', 'errors'}
        """
        errors = []
        updated = 0

        for base in BASE_CURRENCIES:
            try:
                logger.info(f"获取 {base} 汇率...")
                data = self.client.fetch_rates(base)
                records = self.convert_to_records(base, data['rates'], data.get('date'))
                if records:
                    updated += store_rates(records)
                    logger.info(f"写入 {len(records)} 条 {base} 汇率")
            except (ExchangeRateAPIError, SQLAlchemyError) as e:
                db.session.rollback()
                message = f"Failed to update rates for {base}: {e}"
                logger.error(message)
                errors.append(message)

        return {
            'success': not errors,
            'updatedRates': updated,
            'errors': errors
        }

    def run_update_job(self):
        """执行汇率更新任务，成功后清空换算缓存"""
        from app.currency.conversion import currency_converter

        started = time.time()
        timestamp = datetime.utcnow().isoformat()
        logger.info(f"[{timestamp}] 开始更新汇率")

        result = self.update_all_rates()
        duration = int((time.time() - started) * 1000)

        cache_cleared = False
        if result['success']:
            currency_converter.clear_cache()
            cache_cleared = True
            logger.info(f"汇率更新完成: {result['updatedRates']} 条, 耗时 {duration}ms")
        else:
            logger.error(f"汇率更新有错误: {len(result['errors'])} 个, 已更新 {result['updatedRates']} 条")

        return {
            'success': result['success'],
            'timestamp': timestamp,
            'updatedRates': result['updatedRates'],
            'errors': result['errors'],
            'duration': duration,
            'details': {
                'fetchedCurrencies': list(BASE_CURRENCIES),
                'totalRatesProcessed': result['updatedRates'],
                'cacheCleared': cache_cleared
            }
        }

    def health_check(self):
        """检查外部 API 与数据库中的汇率"""
        try:
            data = self.client.fetch_rates('EUR')
            api_status = {'healthy': bool(data.get('rates'))}
        except ExchangeRateAPIError as e:
            api_status = {'healthy': False, 'error': str(e)}

        latest = {'count': 0, 'lastUpdated': None}
        try:
            if get_latest_rate('EUR', 'USD') is not None:
                db_status = {'healthy': True}
            else:
                db_status = {'healthy': False, 'error': 'No exchange rates found'}

            latest['count'] = len(get_latest_rates_for_currency('EUR'))
            newest = ExchangeRate.query.order_by(ExchangeRate.rate_date.desc()).first()
            if newest:
                latest['lastUpdated'] = newest.rate_date.isoformat()
        except SQLAlchemyError as e:
            db_status = {'healthy': False, 'error': str(e)}

        return {
            'healthy': api_status['healthy'] and db_status['healthy'],
            'apiStatus': api_status,
            'databaseStatus': db_status,
            'latestRates': latest
        }
