"""
卡片模型 - 核心数据结构
"""
from app import db
from datetime import datetime


class Card(db.Model):
    """
    卡片基础信息
    同一张卡片可能有多个印刷版本 (普通、闪卡、反闪、初版等)，
    版本由规则引擎推断，不单独建表
    """
    __tablename__ = 'tcg_cards'

    # 卡片ID (如: swsh4-082)
    id = db.Column(db.String(50), primary_key=True)

    # 所属系列
    set_id = db.Column(db.String(50), db.ForeignKey('tcg_sets.id'), nullable=False, index=True)

    # 卡片编号 (如: 82, 12/102, SWSH100)
    number = db.Column(db.String(20), nullable=False)

    # 卡片名称
    name = db.Column(db.String(200), nullable=False, index=True)

    # Pokémon / Trainer / Energy
    supertype = db.Column(db.String(20))

    # 子类型 (Basic, Stage 1, Item, Supporter, ...)
    subtypes = db.Column(db.JSON, default=list)

    # HP
    hp = db.Column(db.String(10))

    # 属性 (Fire, Water, ...)
    types = db.Column(db.JSON, default=list)

    # 稀有度: Common / Uncommon / Rare / Rare Holo / Double Rare / ...
    rarity = db.Column(db.String(50), index=True)

    # 画师
    artist = db.Column(db.String(100))

    # 图片 (small / large)
    images = db.Column(db.JSON, default=dict)

    # 创建/更新时间
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    prices = db.relationship('CardPrice', backref='card', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Card {self.id} {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'set_id': self.set_id,
            'number': self.number,
            'name': self.name,
            'supertype': self.supertype,
            'subtypes': self.subtypes or [],
            'hp': self.hp,
            'types': self.types or [],
            'rarity': self.rarity,
            'artist': self.artist,
            'images': self.images or {}
        }

    def to_engine_input(self):
        """转换为规则引擎的输入格式"""
        tcgplayer_prices = {}
        for p in self.prices.filter_by(source='tcgplayer'):
            tcgplayer_prices[p.external_variant or p.variant] = {
                'low': p.low,
                'mid': p.mid,
                'high': p.high,
                'market': p.market
            }

        card_set = self.set
        return {
            'id': self.id,
            'name': self.name,
            'number': self.number,
            'rarity': self.rarity or '',
            'supertype': self.supertype,
            'subtypes': self.subtypes or [],
            'set': {
                'id': self.set_id,
                'series': card_set.series if card_set else '',
                'release_date': card_set.release_date if card_set else None
            },
            'tcgplayer_prices': tcgplayer_prices
        }
