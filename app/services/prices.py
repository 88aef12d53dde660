"""
卡片价格查询 - 按用户偏好选择来源并换算货币
"""
from loguru import logger

from app.models import Card, CardPrice
from app.currency.conversion import currency_converter
from app.currency.validation import get_safe_currency, get_safe_price_source

# 版本优先级 (普通优先，其次是只有闪卡的卡)
VARIANT_PRIORITY = [
    'normal',
    'holofoil',
    'reverse_holofoil',
    'first_edition_normal',
    'first_edition_holofoil',
    'unlimited',
]

# 价格字段优先级 (market 最准确)
PRICE_FIELDS = ['market', 'mid', 'low', 'direct_low']

# 相对 30 日均价变动超过该百分比视为涨/跌
TREND_THRESHOLD = 5


def fallback_source(source):
    return 'tcgplayer' if source == 'cardmarket' else 'cardmarket'


def find_cheapest_price(prices, source):
    """
    在优先版本中找最低价，找到即停止；都没有时再看其余版本

    Args:
        prices: CardPrice 列表
        source: 实际使用的来源

    Returns:
        dict 或 None
    """
    if not prices:
        return None

    def scan(rows):
        best = None
        for row in rows:
            for field in PRICE_FIELDS:
                value = getattr(row, field)
                if value and value > 0 and (best is None or value < best['price']):
                    best = {
                        'variant': row.variant,
                        'price': value,
                        'currency': row.currency,
                        'price_type': field,
                        'source': source,
                        'last_updated': row.last_updated
                    }
        return best

    for variant in VARIANT_PRIORITY:
        cheapest = scan([p for p in prices if p.variant == variant])
        if cheapest:
            return cheapest

    return scan([p for p in prices if p.variant not in VARIANT_PRIORITY])


def build_historical_trends(prices):
    """根据 Cardmarket 1/7/30 日均价计算趋势"""
    trends = {}
    for row in prices:
        if row.source != 'cardmarket':
            continue
        if not (row.avg_1_day or row.avg_7_day or row.avg_30_day):
            continue

        current = row.market or row.mid or row.low
        direction = 'stable'
        percentage = 0

        if current and row.avg_30_day:
            change = (current - row.avg_30_day) / row.avg_30_day * 100
            percentage = round(change, 2)
            if abs(change) > TREND_THRESHOLD:
                direction = 'up' if change > 0 else 'down'

        trends[row.variant] = {
            'avg_1_day': row.avg_1_day,
            'avg_7_day': row.avg_7_day,
            'avg_30_day': row.avg_30_day,
            'trend_direction': direction,
            'trend_percentage': percentage
        }
    return trends


class CardPriceService:
    """卡片价格服务"""

    def __init__(self, converter=None):
        self.converter = converter or currency_converter

    def get_cards_with_prices(self, card_ids, preferences):
        """
        批量获取卡片及价格

        Args:
            card_ids: 卡片ID列表
            preferences: {'preferred_currency', 'preferred_price_source'}

        Returns:
            卡片 dict 列表，每个带 price_data
        """
        currency = get_safe_currency(preferences.get('preferred_currency'))
        source = get_safe_price_source(preferences.get('preferred_price_source'))
        other = fallback_source(source)

        cards = Card.query.filter(Card.id.in_(card_ids)).all()
        rows = CardPrice.query.filter(CardPrice.card_id.in_(card_ids)).all()

        by_card = {}
        for row in rows:
            by_card.setdefault(row.card_id, []).append(row)

        results = []
        for card in cards:
            card_prices = by_card.get(card.id, [])
            preferred = [p for p in card_prices if p.source == source]
            fallback = [p for p in card_prices if p.source == other]
            results.append(self._process_card(card, preferred, fallback, source, other, currency))

        return results

    def _process_card(self, card, preferred, fallback, source, other, currency):
        has_preferred = bool(preferred)
        source_used = source if has_preferred else other

        cheapest = find_cheapest_price(preferred if has_preferred else fallback, source_used)
        if cheapest and cheapest['currency'] != currency:
            conversion = self.converter.convert(cheapest['price'], cheapest['currency'], currency)
            if conversion.error:
                logger.warning(f"价格换算失败 {card.id}: {conversion.error}")
            cheapest = {
                **cheapest,
                'price': conversion.converted_amount,
                'currency': conversion.to_currency,
                'is_approximate': conversion.is_approximate
            }

        trends = build_historical_trends(preferred + fallback)

        data = card.to_dict()
        data['price_data'] = {
            'preferred_source_prices': [p.to_dict() for p in preferred],
            'fallback_source_prices': [p.to_dict() for p in fallback],
            'cheapest_variant_price': cheapest,
            'price_source_used': source_used,
            'has_fallback': not has_preferred and bool(fallback),
            'has_historical_data': bool(trends),
            'historical_trends': trends
        }
        return data

    def get_card_with_prices(self, card_id, preferences):
        results = self.get_cards_with_prices([card_id], preferences)
        return results[0] if results else None

    def get_cheapest_price(self, card_id, preferences):
        card = self.get_card_with_prices(card_id, preferences)
        return card['price_data']['cheapest_variant_price'] if card else None


card_price_service = CardPriceService()
