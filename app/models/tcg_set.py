"""
卡牌系列 (扩展包) 模型
"""
from app import db
from datetime import datetime


class TCGSet(db.Model):
    """系列/扩展包"""
    __tablename__ = 'tcg_sets'

    # 系列标识 (如: base1, swsh4, sv8pt5)
    id = db.Column(db.String(50), primary_key=True)

    # 系列名称
    name = db.Column(db.String(200), nullable=False)

    # 所属时代系列名 (如: Base, Sword & Shield, Scarlet & Violet)
    series = db.Column(db.String(100), index=True)

    # 卡牌游戏类型: pokemon / lorcana / magic / yugioh / digimon / onepiece
    tcg_type = db.Column(db.String(20), nullable=False, default='pokemon', index=True)

    # PTCGO 代码
    ptcgo_code = db.Column(db.String(20))

    # 印刷总数 / 实际总数 (含秘密稀有)
    printed_total = db.Column(db.Integer)
    total = db.Column(db.Integer)

    # 发售日期 (API 原样保存: YYYY/MM/DD)
    release_date = db.Column(db.String(20))

    # 图片 (symbol / logo)
    images = db.Column(db.JSON, default=dict)

    # 创建/更新时间
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    cards = db.relationship('Card', backref='set', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<TCGSet {self.id} {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'series': self.series,
            'tcg_type': self.tcg_type,
            'ptcgo_code': self.ptcgo_code,
            'printed_total': self.printed_total,
            'total': self.total,
            'release_date': self.release_date,
            'images': self.images or {}
        }
