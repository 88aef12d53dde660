"""
收藏和系列偏好模型
"""
from app import db
from datetime import datetime


class CollectionItem(db.Model):
    """
    用户收藏 - 每张卡片每个版本一行
    """
    __tablename__ = 'collection_items'

    id = db.Column(db.Integer, primary_key=True)

    # 所属用户
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # 收藏的卡片
    card_id = db.Column(db.String(50), db.ForeignKey('tcg_cards.id'), nullable=False, index=True)

    # 版本 (界面版本类型: normal / holo / reverse_holo_standard / ...)
    variant = db.Column(db.String(30), nullable=False, default='normal')

    # 拥有数量
    quantity = db.Column(db.Integer, nullable=False, default=1)

    # 卡片状态: mint / near_mint / played / damaged
    condition = db.Column(db.String(20))

    # 备注
    notes = db.Column(db.Text)

    # 入手时间
    acquired_at = db.Column(db.DateTime)

    # 创建/更新时间
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    card = db.relationship('Card', backref=db.backref('collection_items', lazy='dynamic'))

    # 联合唯一约束: user_id + card_id + variant
    __table_args__ = (
        db.UniqueConstraint('user_id', 'card_id', 'variant', name='uq_collection_user_card_variant'),
    )

    def __repr__(self):
        return f'<CollectionItem user={self.user_id} card={self.card_id} {self.variant} x{self.quantity}>'


class UserSetPreference(db.Model):
    """
    系列偏好 - 是否按大师收集 (master set) 统计完成度
    """
    __tablename__ = 'user_set_preferences'

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    set_id = db.Column(db.String(50), db.ForeignKey('tcg_sets.id'), nullable=False, index=True)

    # 大师收集: 每个版本都计入完成度
    is_master_set = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'set_id', name='uq_user_set_preference'),
    )

    def __repr__(self):
        return f'<UserSetPreference user={self.user_id} set={self.set_id} master={self.is_master_set}>'

    def to_dict(self):
        return {
            'setId': self.set_id,
            'isMasterSet': self.is_master_set,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
