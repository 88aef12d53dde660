"""
价格与汇率模型
"""
from app import db
from datetime import datetime, date


class CardPrice(db.Model):
    """
    卡片价格 (每个来源 + 版本一行，导入时覆盖)
    """
    __tablename__ = 'tcg_card_prices'

    id = db.Column(db.Integer, primary_key=True)

    # 所属卡片
    card_id = db.Column(db.String(50), db.ForeignKey('tcg_cards.id'), nullable=False, index=True)

    # 价格来源: cardmarket / tcgplayer
    source = db.Column(db.String(20), nullable=False, index=True)

    # 归一化版本名: normal / holofoil / reverse_holofoil / first_edition_normal / ...
    variant = db.Column(db.String(30), nullable=False)

    # API 原始版本键 (如 reverseHolofoil, 1stEditionHolofoil)
    external_variant = db.Column(db.String(50))

    # 货币: cardmarket 为 EUR，tcgplayer 为 USD
    currency = db.Column(db.String(5), nullable=False, default='EUR')

    # 价格字段
    low = db.Column(db.Float)
    mid = db.Column(db.Float)
    high = db.Column(db.Float)
    market = db.Column(db.Float)
    direct_low = db.Column(db.Float)

    # Cardmarket 扩展字段
    average_sell_price = db.Column(db.Float)
    german_pro_low = db.Column(db.Float)
    suggested_price = db.Column(db.Float)
    low_price_ex_plus = db.Column(db.Float)
    trend_price = db.Column(db.Float)

    # 历史均价
    avg_1_day = db.Column(db.Float)
    avg_7_day = db.Column(db.Float)
    avg_30_day = db.Column(db.Float)

    # 原始URL (方便溯源)
    url = db.Column(db.String(500))

    # 来源更新时间
    last_updated = db.Column(db.String(30))

    # 记录时间
    recorded_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('card_id', 'source', 'variant', name='uq_card_price_source_variant'),
    )

    def __repr__(self):
        return f'<CardPrice {self.card_id} {self.source}/{self.variant} {self.market} {self.currency}>'

    def to_dict(self):
        data = {
            'variant': self.variant,
            'source': self.source,
            'currency': self.currency,
            'prices': {
                'low': self.low,
                'mid': self.mid,
                'high': self.high,
                'market': self.market,
                'direct_low': self.direct_low
            },
            'last_updated': self.last_updated,
            'url': self.url
        }
        if self.source == 'cardmarket':
            data['cardmarket_data'] = {
                'averageSellPrice': self.average_sell_price,
                'germanProLow': self.german_pro_low,
                'suggestedPrice': self.suggested_price,
                'lowPriceExPlus': self.low_price_ex_plus,
                'trendPrice': self.trend_price,
                'avg1': self.avg_1_day,
                'avg7': self.avg_7_day,
                'avg30': self.avg_30_day
            }
        return data


class ExchangeRate(db.Model):
    """
    每日汇率
    1 from_currency = rate to_currency
    """
    __tablename__ = 'exchange_rates'

    id = db.Column(db.Integer, primary_key=True)

    from_currency = db.Column(db.String(5), nullable=False)
    to_currency = db.Column(db.String(5), nullable=False)

    rate = db.Column(db.Float, nullable=False)

    # 汇率日期 (API 返回的日期)
    rate_date = db.Column(db.Date, nullable=False, default=date.today)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('from_currency', 'to_currency', 'rate_date', name='uq_currency_pair_date'),
        db.Index('idx_exchange_rates_latest', 'from_currency', 'to_currency', 'rate_date'),
    )

    def __repr__(self):
        return f'<ExchangeRate {self.from_currency}->{self.to_currency} {self.rate} ({self.rate_date})>'
