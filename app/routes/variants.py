"""
版本路由 - 版本推断与用户版本数量
"""
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from loguru import logger
from app.models import Card, TCGSet
from app.services import collection as collection_service
from app.services.collection import CollectionValidationError, CollectionNotFoundError
from app.services.variants import variants_for_cards, engine_inputs_for_ids
from app import db

bp = Blueprint('variants', __name__, url_prefix='/api/variants')


def _engine_input(card):
    """请求中的卡片可以是完整的引擎输入，也可以只是卡片ID"""
    if isinstance(card, str):
        db_card = db.session.get(Card, card)
        return db_card.to_engine_input() if db_card else None
    if isinstance(card, dict) and card.get('id'):
        return card
    return None


@bp.route('/engine', methods=['POST'])
def engine():
    """
    版本推断

    Body:
        mode: single / bulk
        card / cardId: single 模式
        cards / cardIds / setId: bulk 模式
        includeUserQuantities: 是否附带当前用户的数量
    """
    data = request.get_json(silent=True) or {}
    mode = data.get('mode')

    if mode not in ('single', 'bulk'):
        return jsonify({'error': 'mode must be either "single" or "bulk"'}), 400

    user_id = None
    if data.get('includeUserQuantities') and current_user.is_authenticated:
        user_id = current_user.id

    if mode == 'single':
        card_input = _engine_input(data.get('card') or data.get('cardId'))
        if card_input is None:
            return jsonify({'error': 'card is required for single mode'}), 400

        result = variants_for_cards([card_input], user_id)['results'][card_input['id']]
        return jsonify({'success': True, 'data': result.to_dict()})

    # bulk
    max_cards = current_app.config['MAX_BULK_CARDS']
    missing = []

    if isinstance(data.get('cards'), list):
        if len(data['cards']) > max_cards:
            return jsonify({'error': f'Maximum {max_cards} cards per bulk request'}), 400
        inputs = []
        for card in data['cards']:
            card_input = _engine_input(card)
            if card_input is None:
                missing.append(card if isinstance(card, str) else None)
            else:
                inputs.append(card_input)
    elif isinstance(data.get('cardIds'), list):
        if len(data['cardIds']) > max_cards:
            return jsonify({'error': f'Maximum {max_cards} cards per bulk request'}), 400
        inputs, missing = engine_inputs_for_ids(data['cardIds'])
    elif data.get('setId'):
        tcg_set = db.session.get(TCGSet, data['setId'])
        if tcg_set is None:
            return jsonify({'error': 'Set not found'}), 404
        if tcg_set.cards.count() > max_cards:
            return jsonify({'error': f'Maximum {max_cards} cards per bulk request'}), 400
        inputs = [c.to_engine_input() for c in tcg_set.cards]
    else:
        return jsonify({'error': 'setId, cards or cardIds is required for bulk mode'}), 400

    result = variants_for_cards(inputs, user_id)
    errors = result['errors'] + [{'cardId': m, 'error': 'Card not found'} for m in missing]

    logger.debug(f"批量版本推断: {len(result['results'])} 张, 错误 {len(errors)}")
    return jsonify({
        'success': True,
        'data': {
            'results': {cid: out.to_dict() for cid, out in result['results'].items()},
            'errors': errors
        }
    })


@bp.route('/quantities', methods=['GET'])
@login_required
def get_quantities():
    """?cardId= 单张 或 ?cardIds=a,b,c 多张"""
    card_id = request.args.get('cardId', '').strip()
    card_ids_param = request.args.get('cardIds', '').strip()

    if not card_id and not card_ids_param:
        return jsonify({'error': 'cardIds or cardId parameter is required'}), 400

    if card_id:
        quantities = collection_service.get_card_quantities(current_user.id, card_id)
        return jsonify({'success': True, 'quantities': quantities})

    card_ids = [i for i in card_ids_param.split(',') if i]
    max_items = current_app.config['MAX_BATCH_ITEMS']
    if not card_ids:
        return jsonify({'error': 'No valid card IDs provided'}), 400
    if len(card_ids) > max_items:
        return jsonify({'error': f'Maximum {max_items} cards per request'}), 400

    data = collection_service.get_quantities_for_cards(current_user.id, card_ids)
    return jsonify({'success': True, 'data': data})


@bp.route('/quantities', methods=['POST'])
@login_required
def set_quantity():
    """设置单个版本数量 {cardId, variant, quantity, condition?, notes?}"""
    data = request.get_json(silent=True) or {}
    try:
        collection_service.set_variant_quantity(
            current_user.id,
            data,
            max_quantity=current_app.config['MAX_VARIANT_QUANTITY']
        )
    except CollectionNotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except CollectionValidationError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'message': 'Variant quantity updated successfully'})


@bp.route('/quantities', methods=['PUT'])
@login_required
def bulk_set_quantities():
    """批量设置 {updates: [...]}"""
    data = request.get_json(silent=True) or {}
    try:
        count = collection_service.bulk_update_quantities(
            current_user.id,
            data.get('updates'),
            max_items=current_app.config['MAX_BATCH_ITEMS'],
            max_quantity=current_app.config['MAX_VARIANT_QUANTITY']
        )
    except CollectionValidationError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'message': f'Successfully updated {count} variant quantities'})


@bp.route('/bulk', methods=['POST'])
@login_required
def bulk_quantities():
    """旧版批量数量查询 {cardIds: [...]}"""
    data = request.get_json(silent=True) or {}
    card_ids = data.get('cardIds')
    max_items = current_app.config['MAX_BATCH_ITEMS']

    if not isinstance(card_ids, list) or not card_ids:
        return jsonify({'error': 'cardIds must be a non-empty array'}), 400
    if len(card_ids) > max_items:
        return jsonify({'error': f'Maximum {max_items} cards per request'}), 400

    result = collection_service.get_quantities_for_cards(current_user.id, card_ids, include_empty=True)
    return jsonify({'success': True, 'data': result})


@bp.route('/bulk', methods=['GET'])
def bulk_quantities_get():
    return jsonify({
        'error': 'Use POST method for bulk requests or individual GET endpoints for single cards',
        'endpoints': {
            'single_card': '/api/variants/quantities?cardId={cardId}',
            'bulk_post': '/api/variants/bulk (POST with cardIds array)'
        }
    }), 405
