"""
管理员路由 - 自定义版本管理
"""
from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from app.services import admin as admin_service
from app.services.admin import AdminValidationError, AdminNotFoundError

bp = Blueprint('admin', __name__, url_prefix='/api/admin/variants')


def admin_required(f):
    """需要登录且邮箱在 ADMIN_EMAILS 中"""
    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'error': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated


@bp.errorhandler(AdminValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@bp.errorhandler(AdminNotFoundError)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


@bp.route('/search')
@admin_required
def search():
    """?query=&set_id=&rarity=&has_custom_variants=true|false"""
    has_custom = request.args.get('has_custom_variants')
    results = admin_service.search_cards(
        query=request.args.get('query', '').strip() or None,
        set_id=request.args.get('set_id', '').strip() or None,
        rarity=request.args.get('rarity', '').strip() or None,
        has_custom_variants=None if has_custom is None else has_custom == 'true'
    )
    return jsonify({'success': True, 'data': results})


@bp.route('/preview/<card_id>')
@admin_required
def preview(card_id):
    data = admin_service.preview_variants(card_id)
    return jsonify({'success': True, 'data': data})


@bp.route('/custom', methods=['GET'])
@admin_required
def list_custom():
    """?card_id="""
    card_id = request.args.get('card_id', '').strip()
    if not card_id:
        return jsonify({'error': 'card_id parameter is required'}), 400
    return jsonify({'success': True, 'data': admin_service.get_custom_variants(card_id)})


@bp.route('/custom', methods=['POST'])
@admin_required
def create_custom():
    data = request.get_json(silent=True) or {}
    variant = admin_service.create_custom_variant(data, created_by=current_user.id)
    return jsonify({'success': True, 'data': variant}), 201


@bp.route('/custom/<int:variant_id>', methods=['PUT'])
@admin_required
def update_custom(variant_id):
    data = request.get_json(silent=True) or {}
    variant = admin_service.update_custom_variant(variant_id, data)
    return jsonify({'success': True, 'data': variant})


@bp.route('/custom/<int:variant_id>', methods=['DELETE'])
@admin_required
def delete_custom(variant_id):
    admin_service.delete_custom_variant(variant_id)
    return jsonify({'success': True, 'message': 'Custom variant deleted successfully'})


@bp.route('/disabled', methods=['POST'])
@admin_required
def disable_variant():
    """禁用标准版本 {card_id, variant_type}"""
    data = request.get_json(silent=True) or {}
    if not data.get('card_id'):
        return jsonify({'error': 'card_id is required'}), 400
    disabled = admin_service.disable_standard_variant(data['card_id'], data.get('variant_type'))
    return jsonify({'success': True, 'data': disabled})


@bp.route('/disabled', methods=['DELETE'])
@admin_required
def enable_variant():
    """重新启用 ?card_id=&variant_type="""
    card_id = request.args.get('card_id', '').strip()
    variant_type = request.args.get('variant_type', '').strip()
    if not card_id or not variant_type:
        return jsonify({'error': 'card_id and variant_type are required'}), 400
    disabled = admin_service.enable_standard_variant(card_id, variant_type)
    return jsonify({'success': True, 'data': disabled})


@bp.route('/stats')
@admin_required
def stats():
    return jsonify({'success': True, 'data': admin_service.get_statistics()})
