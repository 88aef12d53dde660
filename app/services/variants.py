"""
版本引擎的数据库适配 - 读取自定义版本、禁用版本和用户数量后调用引擎
"""
from app.models import Card, CustomCardVariant, DisabledStandardVariant
from app.services.collection import get_quantities_for_cards
from app.variants.engine import generate_variants_for_card, generate_variants_for_set


def custom_variants_by_card(card_ids, active_only=True):
    q = CustomCardVariant.query.filter(CustomCardVariant.card_id.in_(card_ids))
    if active_only:
        q = q.filter(CustomCardVariant.is_active.is_(True))

    result = {}
    for cv in q.all():
        result.setdefault(cv.card_id, []).append(cv.to_dict())
    return result


def disabled_variants_by_card(card_ids):
    result = {}
    for row in DisabledStandardVariant.query.filter(DisabledStandardVariant.card_id.in_(card_ids)).all():
        result.setdefault(row.card_id, []).append(row.variant_type)
    return result


def variants_for_card(card, user_id=None):
    """单张卡牌 (Card 模型) 的版本"""
    quantities = get_quantities_for_cards(user_id, [card.id]).get(card.id) if user_id else None
    return generate_variants_for_card(
        card.to_engine_input(),
        custom_variants=custom_variants_by_card([card.id]).get(card.id, ()),
        disabled=disabled_variants_by_card([card.id]).get(card.id, ()),
        user_quantities=quantities,
    )


def variants_for_cards(card_inputs, user_id=None):
    """
    批量推断

    Args:
        card_inputs: 引擎输入 dict 列表

    Returns:
        {'results': {card_id: VariantEngineOutput}, 'errors': [...]}
    """
    card_ids = [c.get('id') for c in card_inputs if isinstance(c, dict) and c.get('id')]
    quantities = get_quantities_for_cards(user_id, card_ids) if user_id else {}
    return generate_variants_for_set(
        card_inputs,
        custom_by_card=custom_variants_by_card(card_ids),
        disabled_by_card=disabled_variants_by_card(card_ids),
        quantities_by_card=quantities,
    )


def engine_inputs_for_ids(card_ids):
    """按ID从数据库构建引擎输入，返回 (输入列表, 未找到的ID)"""
    cards = Card.query.filter(Card.id.in_(card_ids)).all()
    found = {c.id for c in cards}
    return [c.to_engine_input() for c in cards], [i for i in card_ids if i not in found]
