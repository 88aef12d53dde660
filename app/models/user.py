"""
用户模型
"""
from app import db, login_manager
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime


class User(UserMixin, db.Model):
    """用户"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)

    # 用户名 (唯一)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)

    # 邮箱 (唯一)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)

    # 密码哈希
    password_hash = db.Column(db.String(256), nullable=False)

    # 显示名称
    display_name = db.Column(db.String(100))

    # 头像URL
    avatar_url = db.Column(db.String(500))

    # 偏好: 显示货币 / 价格来源
    preferred_currency = db.Column(db.String(5), nullable=False, default='EUR')
    preferred_price_source = db.Column(db.String(20), nullable=False, default='cardmarket')

    # 账号状态: active / inactive / banned
    status = db.Column(db.String(20), default='active')

    # 创建/更新时间
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = db.Column(db.DateTime)

    # 关系
    collection_items = db.relationship('CollectionItem', backref='user', lazy='dynamic', cascade='all, delete-orphan')
    set_preferences = db.relationship('UserSetPreference', backref='user', lazy='dynamic', cascade='all, delete-orphan')

    def set_password(self, password):
        """设置密码"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """验证密码"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        """邮箱在 ADMIN_EMAILS 中即为管理员"""
        return (self.email or '').lower() in current_app.config.get('ADMIN_EMAILS', [])

    @property
    def preferences(self):
        return {
            'preferred_currency': self.preferred_currency,
            'preferred_price_source': self.preferred_price_source
        }

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'display_name': self.display_name,
            'avatar_url': self.avatar_url,
            'is_admin': self.is_admin,
            **self.preferences
        }

    def __repr__(self):
        return f'<User {self.username}>'


@login_manager.user_loader
def load_user(user_id):
    """Flask-Login 用户加载器"""
    return db.session.get(User, int(user_id))
