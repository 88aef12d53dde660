"""
认证相关路由 (JSON)
"""
from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from loguru import logger
from app.models.user import User
from app import db
from datetime import datetime

bp = Blueprint('auth', __name__, url_prefix='/auth')


def _payload():
    """JSON 或表单"""
    return request.get_json(silent=True) or request.form


@bp.route('/login', methods=['GET', 'POST'])
def login():
    """登录"""
    if request.method == 'GET':
        return jsonify({
            'authenticated': current_user.is_authenticated,
            'message': 'POST username/email and password to log in'
        })

    data = _payload()
    username = (data.get('username') or data.get('email') or '').strip()
    password = data.get('password') or ''
    remember = bool(data.get('remember', False))

    if not username or not password:
        return jsonify({'error': 'username and password are required'}), 400

    user = User.query.filter(
        (User.username == username) | (User.email == username.lower())
    ).first()

    if not user or not user.check_password(password):
        return jsonify({'error': 'Invalid username or password'}), 401

    if user.status != 'active':
        return jsonify({'error': 'Account is disabled'}), 403

    login_user(user, remember=remember)
    user.last_login_at = datetime.utcnow()
    db.session.commit()

    logger.info(f"用户登录: {user.username}")
    return jsonify({'success': True, 'data': user.to_dict()})


@bp.route('/register', methods=['POST'])
def register():
    """注册"""
    data = _payload()
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    password2 = data.get('password2', password)

    # 验证
    if not all([username, email, password]):
        return jsonify({'error': 'username, email and password are required'}), 400

    if password != password2:
        return jsonify({'error': 'Passwords do not match'}), 400

    if len(password) < 6:
        return jsonify({'error': 'Password must be at least 6 characters'}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    # 创建用户
    user = User(
        username=username,
        email=email,
        display_name=username
    )
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    logger.info(f"新用户注册: {username}")
    return jsonify({'success': True, 'data': user.to_dict()}), 201


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """退出登录"""
    logout_user()
    return jsonify({'success': True})


@bp.route('/me')
@login_required
def me():
    """当前用户"""
    return jsonify({'success': True, 'data': current_user.to_dict()})
