"""
卡片排序
"""
import re

# 卡片编号前缀 (如 SWSH100, SM60)
NUMBER_PREFIX = re.compile(
    r'^(SWSH|SM|XY|BW|DP|EX|e-Card|Base|Neo|Gym|Team Rocket|Legendary|Southern Islands)',
    re.IGNORECASE
)

SORT_FIELDS = ['number', 'name', 'price']


def extract_card_number(number):
    """取编号中的第一段数字，没有数字的排最后"""
    cleaned = NUMBER_PREFIX.sub('', number or '')
    m = re.search(r'\d+', cleaned)
    return int(m.group()) if m else 9999


def natural_key(text):
    """不区分大小写的自然排序 ('Card 2' < 'Card 10')"""
    return [int(part) if part.isdigit() else part.casefold()
            for part in re.split(r'(\d+)', text or '')]


def extract_card_price(card):
    """最低价版本的价格，没有价格为 0"""
    price_data = card.get('price_data') or {}
    cheapest = price_data.get('cheapest_variant_price')
    if isinstance(cheapest, dict):
        return cheapest.get('price') or 0
    return 0


def sort_cards(cards, field=None, direction='asc'):
    """
    排序卡片 dict 列表

    Args:
        field: number / name / price，None 保持原顺序
        direction: asc / desc
    """
    if field not in SORT_FIELDS:
        return list(cards)

    if field == 'number':
        key = lambda c: extract_card_number(c.get('number'))
    elif field == 'name':
        key = lambda c: natural_key(c.get('name'))
    else:
        key = extract_card_price

    return sorted(cards, key=key, reverse=(direction == 'desc'))
