"""
Lumidex 卡牌收藏网站 - Flask 应用工厂
"""
from flask import Flask, jsonify, request, redirect, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from loguru import logger
import os

db = SQLAlchemy()
login_manager = LoginManager()


def create_app(config_name=None):
    """应用工厂函数"""
    app = Flask(__name__)

    # 加载配置
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app.config.from_object(f'app.config.{config_name.capitalize()}Config')

    # SQLite 文件需要 data 目录
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and \
            ':memory:' not in app.config['SQLALCHEMY_DATABASE_URI']:
        os.makedirs(os.path.join(os.path.dirname(__file__), '..', 'data'), exist_ok=True)

    # 初始化扩展
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.unauthorized_handler(_unauthorized)

    # 注册蓝图
    from app.routes import main, auth, cards, prices, variants, user, admin, jobs

    app.register_blueprint(main.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(cards.bp)
    app.register_blueprint(prices.bp)
    app.register_blueprint(variants.bp)
    app.register_blueprint(user.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(jobs.bp)

    _register_error_handlers(app)

    # 创建数据库表
    with app.app_context():
        from app import models  # noqa: F401
        db.create_all()

    logger.debug(f"应用已创建 (config={config_name})")
    return app


def _unauthorized():
    """未登录: API 返回 JSON，其余跳转登录"""
    if request.path.startswith('/api/') or request.is_json:
        return jsonify({'error': 'Authentication required'}), 401
    return redirect(url_for('auth.login'))


def _register_error_handlers(app):
    """统一 JSON 错误响应"""

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        logger.exception(f"Unhandled error on {request.path}")
        return jsonify({'error': 'Internal server error'}), 500
