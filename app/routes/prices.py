"""
价格路由 - 按用户偏好返回价格、货币换算
"""
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from loguru import logger
from app.services.prices import card_price_service
from app.currency.conversion import currency_converter, format_converted_price
from app.currency.validation import (
    validate_currency, validate_price_source, validate_conversion_params,
    DEFAULT_CURRENCY, DEFAULT_PRICE_SOURCE
)

bp = Blueprint('prices', __name__, url_prefix='/api')


def _resolve_preferences(currency=None, price_source=None):
    """
    显式传入的偏好优先，其次登录用户的偏好，最后默认值

    Returns:
        (preferences, error)
    """
    if currency or price_source:
        if currency:
            result = validate_currency(currency)
            if not result.is_valid:
                return None, result.errors[0]
        if price_source:
            result = validate_price_source(price_source)
            if not result.is_valid:
                return None, result.errors[0]
        return {
            'preferred_currency': currency.upper() if currency else DEFAULT_CURRENCY,
            'preferred_price_source': price_source.lower() if price_source else DEFAULT_PRICE_SOURCE
        }, None

    if current_user.is_authenticated:
        return current_user.preferences, None

    return {
        'preferred_currency': DEFAULT_CURRENCY,
        'preferred_price_source': DEFAULT_PRICE_SOURCE
    }, None


@bp.route('/cards/prices', methods=['POST'])
def cards_prices():
    """批量获取价格"""
    data = request.get_json(silent=True) or {}
    card_ids = data.get('cardIds')
    max_items = current_app.config['MAX_BATCH_ITEMS']

    if not isinstance(card_ids, list) or not card_ids:
        return jsonify({'error': 'cardIds array is required'}), 400

    if len(card_ids) > max_items:
        return jsonify({'error': f'Maximum {max_items} cards per request'}), 400

    if not all(isinstance(i, str) and i for i in card_ids):
        return jsonify({'error': 'All cardIds must be non-empty strings'}), 400

    forced = data.get('forcePreferences') or {}
    if not isinstance(forced, dict):
        return jsonify({'error': 'forcePreferences must be an object'}), 400

    preferences, error = _resolve_preferences(
        forced.get('preferred_currency'),
        forced.get('preferred_price_source')
    )
    if error:
        return jsonify({'error': error}), 400

    cards = card_price_service.get_cards_with_prices(card_ids, preferences)
    return jsonify({
        'success': True,
        'data': cards,
        'preferences': preferences,
        'count': len(cards)
    })


@bp.route('/cards/prices', methods=['GET'])
def card_prices():
    """单张卡片价格 (?cardId=&preferredCurrency=&preferredPriceSource=)"""
    card_id = request.args.get('cardId', '').strip()
    if not card_id:
        return jsonify({'error': 'cardId query parameter is required'}), 400

    preferences, error = _resolve_preferences(
        request.args.get('preferredCurrency'),
        request.args.get('preferredPriceSource')
    )
    if error:
        return jsonify({'error': error}), 400

    card = card_price_service.get_card_with_prices(card_id, preferences)
    if card is None:
        return jsonify({'error': 'Card not found'}), 404

    return jsonify({'success': True, 'data': card, 'preferences': preferences})


@bp.route('/currency/convert')
def convert():
    """货币换算 (?amount=&from=&to=)"""
    raw_amount = request.args.get('amount', '')
    try:
        amount = float(raw_amount)
    except ValueError:
        amount = raw_amount

    from_currency = request.args.get('from', '')
    to_currency = request.args.get('to', '')

    validation = validate_conversion_params(amount, from_currency, to_currency)
    if not validation.is_valid:
        return jsonify({'error': '; '.join(validation.errors)}), 400

    result = currency_converter.convert(amount, from_currency.upper(), to_currency.upper())
    if result.error:
        logger.warning(f"换算失败: {result.error}")

    data = result.to_dict()
    data['formatted'] = format_converted_price(result)
    return jsonify({'success': True, 'data': data, 'warnings': validation.warnings})
