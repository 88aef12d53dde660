"""
用户中心路由 - 收藏、系列偏好、个人偏好
"""
from flask import Blueprint, request, jsonify, abort
from flask_login import login_required, current_user
from app.services import collection as collection_service
from app.services.collection import CollectionValidationError, CollectionNotFoundError
from app.currency.validation import PreferenceValidationError

bp = Blueprint('user', __name__, url_prefix='/api')


@bp.route('/collection/fast')
@login_required
def fast_collection():
    """我的收藏 (按卡片分组)"""
    data = collection_service.get_fast_collection(current_user.id)
    return jsonify({'success': True, 'data': data})


@bp.route('/user/collection/set/<set_id>', methods=['GET'])
@login_required
def set_collection_summary(set_id):
    """某系列的收藏统计"""
    summary = collection_service.get_set_summary(current_user.id, set_id)
    if summary is None:
        abort(404)
    return jsonify({'success': True, 'data': summary})


@bp.route('/user/collection/set/<set_id>', methods=['DELETE'])
@login_required
def reset_set_collection(set_id):
    """清空某系列的收藏"""
    result = collection_service.reset_set_collection(current_user.id, set_id)
    if result is None:
        return jsonify({'error': 'Set not found'}), 404
    return jsonify({'success': True, **result})


@bp.route('/user/set-preferences', methods=['GET'])
@login_required
def get_set_preferences():
    """?setId= 单个，否则全部"""
    set_id = request.args.get('setId', '').strip()
    if set_id:
        data = collection_service.get_set_preference(current_user.id, set_id)
    else:
        data = collection_service.get_all_set_preferences(current_user.id)
    return jsonify({'success': True, 'data': data})


@bp.route('/user/set-preferences', methods=['POST'])
@login_required
def update_set_preference():
    """{setId, isMasterSet}"""
    data = request.get_json(silent=True) or {}
    try:
        pref = collection_service.set_set_preference(
            current_user.id,
            data.get('setId'),
            data.get('isMasterSet')
        )
    except CollectionNotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except CollectionValidationError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'data': pref})


@bp.route('/user/preferences', methods=['GET'])
@login_required
def get_preferences():
    """货币 / 价格来源偏好"""
    prefs = collection_service.get_user_preferences(current_user)
    return jsonify({'success': True, 'data': prefs})


@bp.route('/user/preferences', methods=['POST'])
@login_required
def update_preferences():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Preferences must be an object'}), 400

    try:
        prefs = collection_service.update_user_preferences(current_user, data)
    except PreferenceValidationError as e:
        return jsonify({'error': str(e), 'details': e.errors}), 400

    return jsonify({'success': True, 'data': prefs})
