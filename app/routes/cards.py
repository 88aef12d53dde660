"""
系列与卡片浏览路由
"""
from flask import Blueprint, jsonify, request, abort, current_app
from flask_login import current_user
from app.models import TCGSet, Card
from app.services.prices import card_price_service
from app.services.sorting import sort_cards, SORT_FIELDS
from app.services.variants import variants_for_card
from app.currency.validation import DEFAULT_CURRENCY, DEFAULT_PRICE_SOURCE
from app import db

bp = Blueprint('cards', __name__, url_prefix='/api')


def current_preferences():
    """登录用户的偏好，未登录使用默认值"""
    if current_user.is_authenticated:
        return current_user.preferences
    return {
        'preferred_currency': DEFAULT_CURRENCY,
        'preferred_price_source': DEFAULT_PRICE_SOURCE
    }


@bp.route('/sets')
def set_list():
    """系列列表 (新的在前)"""
    tcg_type = request.args.get('tcg_type', '').strip()

    q = TCGSet.query
    if tcg_type:
        q = q.filter(TCGSet.tcg_type == tcg_type)

    sets = q.order_by(TCGSet.release_date.desc()).all()
    return jsonify({
        'success': True,
        'data': [s.to_dict() for s in sets],
        'count': len(sets)
    })


@bp.route('/sets/<set_id>')
def set_detail(set_id):
    """系列详情"""
    tcg_set = db.session.get(TCGSet, set_id)
    if tcg_set is None:
        abort(404)

    data = tcg_set.to_dict()
    data['card_count'] = tcg_set.cards.count()
    return jsonify({'success': True, 'data': data})


@bp.route('/sets/<set_id>/cards')
def set_cards(set_id):
    """
    系列卡片

    Query:
        sort: number / name / price (默认 number)
        dir: asc / desc
        page: 可选，分页时每页 CARDS_PER_PAGE 张
    """
    tcg_set = db.session.get(TCGSet, set_id)
    if tcg_set is None:
        abort(404)

    sort_field = request.args.get('sort', 'number').strip()
    direction = request.args.get('dir', 'asc').strip().lower()

    if sort_field not in SORT_FIELDS:
        return jsonify({'error': f"sort must be one of {', '.join(SORT_FIELDS)}"}), 400
    if direction not in ('asc', 'desc'):
        return jsonify({'error': 'dir must be asc or desc'}), 400

    card_ids = [c.id for c in tcg_set.cards]
    cards = card_price_service.get_cards_with_prices(card_ids, current_preferences()) if card_ids else []
    cards = sort_cards(cards, sort_field, direction)

    total = len(cards)
    page = request.args.get('page', type=int)
    if page:
        per_page = current_app.config['CARDS_PER_PAGE']
        start = (max(page, 1) - 1) * per_page
        cards = cards[start:start + per_page]

    return jsonify({
        'success': True,
        'data': cards,
        'total': total,
        'sort': sort_field,
        'dir': direction
    })


@bp.route('/cards/<card_id>')
def card_detail(card_id):
    """卡片详情 (含价格与版本)"""
    card = db.session.get(Card, card_id)
    if card is None:
        abort(404)

    data = card_price_service.get_card_with_prices(card.id, current_preferences())
    data['set'] = card.set.to_dict() if card.set else None

    user_id = current_user.id if current_user.is_authenticated else None
    data['variants'] = variants_for_card(card, user_id).to_dict()

    return jsonify({'success': True, 'data': data})
