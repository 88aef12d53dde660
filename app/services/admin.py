"""
管理员 - 自定义版本与禁用版本的维护
"""
from loguru import logger

from app import db
from app.models import Card, CustomCardVariant, DisabledStandardVariant
from app.variants.engine import generate_variants_for_card
from app.variants.types import CUSTOM_VARIANT_TYPES, STANDARD_VARIANT_NAMES
from app.services.variants import disabled_variants_by_card

REQUIRED_FIELDS = ['card_id', 'variant_name', 'variant_type', 'display_name', 'description']
UPDATABLE_FIELDS = [
    'variant_name', 'variant_type', 'display_name', 'description', 'source_product',
    'price_usd', 'price_eur', 'replaces_standard_variant', 'is_active'
]


class AdminValidationError(ValueError):
    pass


class AdminNotFoundError(LookupError):
    pass


def _parse_price(value, field):
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise AdminValidationError(f'{field} must be a number')


def _validate_fields(data):
    if 'variant_type' in data and data['variant_type'] not in CUSTOM_VARIANT_TYPES:
        raise AdminValidationError(
            f"variant_type must be one of {', '.join(CUSTOM_VARIANT_TYPES)}"
        )

    replaces = data.get('replaces_standard_variant')
    if replaces and replaces not in STANDARD_VARIANT_NAMES:
        raise AdminValidationError(
            f"replaces_standard_variant must be one of {', '.join(STANDARD_VARIANT_NAMES)}"
        )

    if 'is_active' in data and not isinstance(data['is_active'], bool):
        raise AdminValidationError('is_active must be a boolean')


def search_cards(query=None, set_id=None, rarity=None, has_custom_variants=None, limit=50):
    """管理员卡片搜索，附带该卡的自定义版本"""
    q = Card.query
    if query:
        like = f'%{query}%'
        q = q.filter(db.or_(Card.name.ilike(like), Card.number.ilike(like), Card.id.ilike(like)))
    if set_id:
        q = q.filter(Card.set_id == set_id)
    if rarity:
        q = q.filter(Card.rarity == rarity)

    results = []
    for card in q.order_by(Card.set_id, Card.number).limit(limit).all():
        custom = [cv.to_dict() for cv in card.custom_variants.filter_by(is_active=True)]
        if has_custom_variants is not None and bool(custom) != has_custom_variants:
            continue
        results.append({
            'id': card.id,
            'name': card.name,
            'number': card.number,
            'set_id': card.set_id,
            'set_name': card.set.name if card.set else 'Unknown Set',
            'rarity': card.rarity,
            'images': card.images or {},
            'custom_variants': custom
        })
    return results


def preview_variants(card_id):
    """
    预览该卡最终显示的版本

    Returns:
        {'standard_variants', 'custom_variants', 'display_variants', 'hidden_variants',
         'disabled_variants', 'metadata'}
    """
    card = db.session.get(Card, card_id)
    if card is None:
        raise AdminNotFoundError('Card not found')

    engine_input = card.to_engine_input()
    custom = [cv.to_dict() for cv in card.custom_variants.filter_by(is_active=True)]
    disabled = disabled_variants_by_card([card.id]).get(card.id, [])

    standard = generate_variants_for_card(engine_input)
    final = generate_variants_for_card(engine_input, custom_variants=custom, disabled=disabled)

    standard_types = standard.variant_types
    display_types = final.variant_types

    return {
        'standard_variants': standard_types,
        'custom_variants': custom,
        'display_variants': display_types,
        'hidden_variants': [t for t in standard_types if t not in display_types],
        'disabled_variants': disabled,
        'metadata': final.to_dict()['metadata']
    }


def get_custom_variants(card_id):
    rows = CustomCardVariant.query.filter_by(card_id=card_id).order_by(CustomCardVariant.created_at).all()
    return [cv.to_dict() for cv in rows]


def create_custom_variant(data, created_by=None):
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise AdminValidationError(f'{field} is required')

    _validate_fields(data)

    if db.session.get(Card, data['card_id']) is None:
        raise AdminNotFoundError('Card not found')

    if CustomCardVariant.query.filter_by(card_id=data['card_id'], variant_name=data['variant_name']).first():
        raise AdminValidationError('variant_name already exists for this card')

    cv = CustomCardVariant(
        card_id=data['card_id'],
        variant_name=data['variant_name'],
        variant_type=data['variant_type'],
        display_name=data['display_name'],
        description=data['description'],
        source_product=data.get('source_product'),
        price_usd=_parse_price(data.get('price_usd'), 'price_usd'),
        price_eur=_parse_price(data.get('price_eur'), 'price_eur'),
        replaces_standard_variant=data.get('replaces_standard_variant') or None,
        created_by=created_by
    )
    db.session.add(cv)
    db.session.commit()

    logger.info(f"创建自定义版本: {cv.card_id}/{cv.variant_name}")
    return cv.to_dict()


def update_custom_variant(variant_id, data):
    cv = db.session.get(CustomCardVariant, variant_id)
    if cv is None:
        raise AdminNotFoundError('Custom variant not found')

    _validate_fields(data)

    for field in UPDATABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field in ('price_usd', 'price_eur'):
            value = _parse_price(value, field)
        elif field == 'replaces_standard_variant':
            value = value or None
        setattr(cv, field, value)

    db.session.commit()
    logger.info(f"更新自定义版本: {cv.id}")
    return cv.to_dict()


def delete_custom_variant(variant_id):
    cv = db.session.get(CustomCardVariant, variant_id)
    if cv is None:
        raise AdminNotFoundError('Custom variant not found')
    db.session.delete(cv)
    db.session.commit()
    logger.info(f"删除自定义版本: {variant_id}")


def disable_standard_variant(card_id, variant_type):
    if variant_type not in STANDARD_VARIANT_NAMES:
        raise AdminValidationError(f"variant_type must be one of {', '.join(STANDARD_VARIANT_NAMES)}")
    if db.session.get(Card, card_id) is None:
        raise AdminNotFoundError('Card not found')

    if not DisabledStandardVariant.query.filter_by(card_id=card_id, variant_type=variant_type).first():
        db.session.add(DisabledStandardVariant(card_id=card_id, variant_type=variant_type))
        db.session.commit()
    return disabled_variants_by_card([card_id]).get(card_id, [])


def enable_standard_variant(card_id, variant_type):
    DisabledStandardVariant.query.filter_by(card_id=card_id, variant_type=variant_type).delete()
    db.session.commit()
    return disabled_variants_by_card([card_id]).get(card_id, [])


def get_statistics():
    active = CustomCardVariant.query.filter_by(is_active=True)
    return {
        'total_custom_variants': CustomCardVariant.query.count(),
        'active_custom_variants': active.count(),
        'cards_with_custom_variants': active.with_entities(CustomCardVariant.card_id).distinct().count(),
        'disabled_standard_variants': DisabledStandardVariant.query.count()
    }
