"""
自定义版本模型 - 管理员维护的版本例外
"""
from app import db
from datetime import datetime


class CustomCardVariant(db.Model):
    """
    自定义版本 (如特典卡、商店限定印刷)
    可以替换一个标准版本
    """
    __tablename__ = 'custom_card_variants'

    id = db.Column(db.Integer, primary_key=True)

    card_id = db.Column(db.String(50), db.ForeignKey('tcg_cards.id'), nullable=False, index=True)

    # 内部名称 (同一张卡唯一)
    variant_name = db.Column(db.String(100), nullable=False)

    # 类型: reverse_holo_pokeball / reverse_holo_masterball / special_edition / promo / custom
    variant_type = db.Column(db.String(30), nullable=False, default='custom')

    display_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)

    # 来源商品 (如: Build & Battle Box)
    source_product = db.Column(db.String(200))

    price_usd = db.Column(db.Float)
    price_eur = db.Column(db.Float)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # 被替换的标准版本 (界面版本类型)
    replaces_standard_variant = db.Column(db.String(30))

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    card = db.relationship('Card', backref=db.backref('custom_variants', lazy='dynamic', cascade='all, delete-orphan'))

    __table_args__ = (
        db.UniqueConstraint('card_id', 'variant_name', name='uq_custom_variant_card_name'),
    )

    def __repr__(self):
        return f'<CustomCardVariant {self.card_id} {self.variant_name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'card_id': self.card_id,
            'variant_name': self.variant_name,
            'variant_type': self.variant_type,
            'display_name': self.display_name,
            'description': self.description,
            'source_product': self.source_product,
            'price_usd': self.price_usd,
            'price_eur': self.price_eur,
            'is_active': self.is_active,
            'replaces_standard_variant': self.replaces_standard_variant,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class DisabledStandardVariant(db.Model):
    """
    被管理员禁用的标准版本 (规则引擎推断错误时使用)
    """
    __tablename__ = 'disabled_standard_variants'

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.String(50), db.ForeignKey('tcg_cards.id'), nullable=False, index=True)
    variant_type = db.Column(db.String(30), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('card_id', 'variant_type', name='uq_disabled_variant'),
    )

    def __repr__(self):
        return f'<DisabledStandardVariant {self.card_id} {self.variant_type}>'
