"""
收藏服务 - 版本数量、系列统计、系列偏好、用户偏好
"""
from loguru import logger

from app import db
from app.models import Card, TCGSet, CollectionItem, UserSetPreference
from app.variants.mapper import map_db_variant_to_ui
from app.variants.types import UI_VARIANT_TYPES, sort_variants_by_order, UIVariant
from app.currency.validation import sanitize_user_preferences

MAX_QUANTITY = 9999


class CollectionValidationError(ValueError):
    """请求参数无效"""


class CollectionNotFoundError(CollectionValidationError):
    """卡片或系列不存在"""


def validate_quantity_update(update, index=None, max_quantity=MAX_QUANTITY):
    """
    校验单条数量更新 {'cardId', 'variant', 'quantity'}

    Raises:
        CollectionValidationError
    """
    prefix = f"Update {index}: " if index is not None else ''

    if not isinstance(update, dict):
        raise CollectionValidationError(f"{prefix}update must be an object")

    card_id = update.get('cardId')
    if not card_id or not isinstance(card_id, str):
        raise CollectionValidationError(f"{prefix}cardId is required and must be a string")

    variant = update.get('variant')
    if not variant or variant not in UI_VARIANT_TYPES:
        raise CollectionValidationError(f"{prefix}invalid variant type")

    quantity = update.get('quantity')
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0 or quantity > max_quantity:
        raise CollectionValidationError(f"{prefix}quantity must be between 0 and {max_quantity}")


# ===== 版本数量 =====

def get_card_quantities(user_id, card_id):
    """{界面版本类型: 数量}"""
    items = CollectionItem.query.filter_by(user_id=user_id, card_id=card_id).all()
    quantities = {}
    for item in items:
        ui_type = map_db_variant_to_ui(item.variant)
        if ui_type:
            quantities[ui_type] = quantities.get(ui_type, 0) + (item.quantity or 0)
    return quantities


def get_quantities_for_cards(user_id, card_ids, include_empty=False):
    """{card_id: {界面版本类型: 数量}}"""
    result = {card_id: {} for card_id in card_ids} if include_empty else {}

    items = CollectionItem.query.filter(
        CollectionItem.user_id == user_id,
        CollectionItem.card_id.in_(card_ids)
    ).all()

    for item in items:
        ui_type = map_db_variant_to_ui(item.variant)
        if not ui_type:
            continue
        card_quantities = result.setdefault(item.card_id, {})
        card_quantities[ui_type] = card_quantities.get(ui_type, 0) + (item.quantity or 0)

    return result


def _apply_quantity(user_id, update):
    item = CollectionItem.query.filter_by(
        user_id=user_id,
        card_id=update['cardId'],
        variant=update['variant']
    ).first()

    if update['quantity'] <= 0:
        if item:
            db.session.delete(item)
        return

    if item is None:
        item = CollectionItem(user_id=user_id, card_id=update['cardId'], variant=update['variant'])
        db.session.add(item)

    item.quantity = update['quantity']
    if 'condition' in update:
        item.condition = update.get('condition')
    if 'notes' in update:
        item.notes = update.get('notes')


def set_variant_quantity(user_id, update, max_quantity=MAX_QUANTITY):
    """设置单个版本数量，0 表示删除"""
    validate_quantity_update(update, max_quantity=max_quantity)
    if db.session.get(Card, update['cardId']) is None:
        raise CollectionNotFoundError('Card not found')

    _apply_quantity(user_id, update)
    db.session.commit()
    logger.debug(f"用户 {user_id} 设置 {update['cardId']}/{update['variant']} = {update['quantity']}")


def bulk_update_quantities(user_id, updates, max_items=100, max_quantity=MAX_QUANTITY):
    """批量更新，先全部校验再写入"""
    if not isinstance(updates, list):
        raise CollectionValidationError('updates must be an array')
    if not updates:
        raise CollectionValidationError('At least one update is required')
    if len(updates) > max_items:
        raise CollectionValidationError(f'Maximum {max_items} updates per request')

    for index, update in enumerate(updates):
        validate_quantity_update(update, index, max_quantity)

    card_ids = {u['cardId'] for u in updates}
    known = {c.id for c in Card.query.filter(Card.id.in_(card_ids)).all()}
    missing = card_ids - known
    if missing:
        raise CollectionValidationError(f"Unknown card ids: {', '.join(sorted(missing))}")

    for update in updates:
        _apply_quantity(user_id, update)
    db.session.commit()

    logger.info(f"用户 {user_id} 批量更新 {len(updates)} 条版本数量")
    return len(updates)


# ===== 系列统计 =====

def get_set_summary(user_id, set_id):
    """
    系列收藏统计

    Returns:
        dict 或 None (系列不存在)
    """
    tcg_set = db.session.get(TCGSet, set_id)
    if tcg_set is None:
        return None

    items = CollectionItem.query.join(Card).filter(
        CollectionItem.user_id == user_id,
        Card.set_id == set_id,
        CollectionItem.quantity > 0
    ).all()

    unique_cards = len({item.card_id for item in items})
    total_quantity = sum(item.quantity for item in items)
    set_total = tcg_set.total or tcg_set.cards.count()
    completion = round(unique_cards / set_total * 100, 2) if set_total else 0

    return {
        'setId': tcg_set.id,
        'setName': tcg_set.name,
        'uniqueCards': unique_cards,
        'totalQuantity': total_quantity,
        'totalCardsInSet': set_total,
        'completionPercentage': completion
    }


def reset_set_collection(user_id, set_id):
    """
    清空某系列的收藏

    Returns:
        dict 或 None (系列不存在)
    """
    tcg_set = db.session.get(TCGSet, set_id)
    if tcg_set is None:
        return None

    card_ids = [c.id for c in tcg_set.cards]
    if not card_ids:
        return {
            'message': 'No cards found in this set',
            'deletedCount': 0,
            'totalQuantity': 0,
            'setName': tcg_set.name
        }

    items = CollectionItem.query.filter(
        CollectionItem.user_id == user_id,
        CollectionItem.card_id.in_(card_ids)
    ).all()

    total_quantity = sum(item.quantity or 0 for item in items)
    for item in items:
        db.session.delete(item)
    db.session.commit()

    logger.info(f"用户 {user_id} 清空系列 {set_id}: {len(items)} 条")
    return {
        'message': f'Successfully reset collection for {tcg_set.name}',
        'deletedCount': len(items),
        'totalQuantity': total_quantity,
        'setName': tcg_set.name
    }


# ===== 收藏列表 =====

def get_fast_collection(user_id):
    """按卡片分组的收藏列表 (只包含拥有的版本)"""
    # 清理数量为 0 的记录
    CollectionItem.query.filter_by(user_id=user_id, quantity=0).delete()
    db.session.commit()

    items = CollectionItem.query.filter(
        CollectionItem.user_id == user_id,
        CollectionItem.quantity > 0
    ).order_by(CollectionItem.created_at.desc()).all()

    groups = {}
    for item in items:
        groups.setdefault(item.card_id, []).append(item)

    cards = []
    total_quantity = 0
    for card_id, card_items in groups.items():
        card = card_items[0].card
        quantities = {}
        for item in card_items:
            ui_type = map_db_variant_to_ui(item.variant)
            if ui_type:
                quantities[ui_type] = quantities.get(ui_type, 0) + item.quantity

        total_owned = sum(quantities.values())
        if total_owned <= 0:
            continue

        variants = sort_variants_by_order([UIVariant(type=t, userQuantity=q) for t, q in quantities.items()])
        total_quantity += total_owned
        cards.append({
            'id': card.id,
            'name': card.name,
            'number': card.number,
            'rarity': card.rarity,
            'types': card.types or [],
            'hp': card.hp,
            'supertype': card.supertype,
            'setId': card.set_id,
            'setName': card.set.name if card.set else None,
            'variants': [v.to_dict() for v in variants],
            'userQuantities': quantities,
            'totalOwned': total_owned,
            'images': card.images or {}
        })

    return {
        'cards': cards,
        'totalCards': len(cards),
        'totalQuantity': total_quantity
    }


# ===== 系列偏好 =====

def get_set_preference(user_id, set_id):
    pref = UserSetPreference.query.filter_by(user_id=user_id, set_id=set_id).first()
    if pref is None:
        return {'setId': set_id, 'isMasterSet': False}
    return pref.to_dict()


def get_all_set_preferences(user_id):
    prefs = UserSetPreference.query.filter_by(user_id=user_id).order_by(UserSetPreference.set_id).all()
    return [p.to_dict() for p in prefs]


def set_set_preference(user_id, set_id, is_master_set):
    if not set_id or not isinstance(set_id, str):
        raise CollectionValidationError('setId is required')
    if not isinstance(is_master_set, bool):
        raise CollectionValidationError('isMasterSet must be a boolean')
    if db.session.get(TCGSet, set_id) is None:
        raise CollectionNotFoundError('Set not found')

    pref = UserSetPreference.query.filter_by(user_id=user_id, set_id=set_id).first()
    if pref is None:
        pref = UserSetPreference(user_id=user_id, set_id=set_id)
        db.session.add(pref)
    pref.is_master_set = is_master_set
    db.session.commit()
    return pref.to_dict()


# ===== 用户偏好 =====

def get_user_preferences(user):
    return sanitize_user_preferences(user.preferences)


def update_user_preferences(user, data):
    """
    更新货币/价格来源偏好

    只校验请求中出现的字段，缺失的字段保留原值
    """
    merged = dict(user.preferences)
    for key in ('preferred_currency', 'preferred_price_source'):
        if key in data:
            merged[key] = data[key]

    sanitized = sanitize_user_preferences(merged, strict_mode=True)
    user.preferred_currency = sanitized['preferred_currency']
    user.preferred_price_source = sanitized['preferred_price_source']
    db.session.commit()
    return sanitized
