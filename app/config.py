"""
配置文件 - 开发/生产环境分离
"""
import os

basedir = os.path.abspath(os.path.dirname(__file__))


class BaseConfig:
    """基础配置"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'lumidex-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 每页显示的卡片数量
    CARDS_PER_PAGE = 24

    # 批量请求上限
    MAX_BULK_CARDS = 500
    MAX_BATCH_ITEMS = 100
    MAX_VARIANT_QUANTITY = 9999

    # 货币与价格来源
    SUPPORTED_CURRENCIES = ['EUR', 'USD', 'GBP', 'NOK']
    SUPPORTED_PRICE_SOURCES = ['cardmarket', 'tcgplayer']
    DEFAULT_CURRENCY = 'EUR'
    DEFAULT_PRICE_SOURCE = 'cardmarket'

    # 汇率缓存时间 (秒)
    RATE_CACHE_SECONDS = int(os.environ.get('RATE_CACHE_SECONDS', 300))

    # 外部 API
    EXCHANGE_RATE_API_URL = os.environ.get('EXCHANGE_RATE_API_URL') or \
        'https://api.exchangerate-api.io/v4/latest'
    POKEMON_TCG_API_URL = os.environ.get('POKEMON_TCG_API_URL') or 'https://api.pokemontcg.io/v2'
    POKEMON_TCG_API_KEY = os.environ.get('POKEMON_TCG_API_KEY')

    # 管理员邮箱 (逗号分隔)
    ADMIN_EMAILS = [e.strip().lower() for e in os.environ.get('ADMIN_EMAILS', '').split(',') if e.strip()]


class DevelopmentConfig(BaseConfig):
    """开发环境配置"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, '..', 'data', 'lumidex_dev.db')


class ProductionConfig(BaseConfig):
    """生产环境配置"""
    DEBUG = False

    # Handle Render's postgres:// vs SQLAlchemy's postgresql://
    _db_uri = os.environ.get('DATABASE_URL', '')
    if _db_uri.startswith('postgres://'):
        _db_uri = _db_uri.replace('postgres://', 'postgresql://', 1)
    SQLALCHEMY_DATABASE_URI = _db_uri or 'sqlite:///' + os.path.join(basedir, '..', 'data', 'lumidex.db')


class TestingConfig(BaseConfig):
    """测试环境配置"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ADMIN_EMAILS = ['admin@example.com']
