"""
数据模型模块
"""
from app.models.tcg_set import TCGSet
from app.models.card import Card
from app.models.price import CardPrice, ExchangeRate
from app.models.user import User
from app.models.collection import CollectionItem, UserSetPreference
from app.models.variant import CustomCardVariant, DisabledStandardVariant

__all__ = [
    'TCGSet',
    'Card',
    'CardPrice', 'ExchangeRate',
    'User',
    'CollectionItem', 'UserSetPreference',
    'CustomCardVariant', 'DisabledStandardVariant'
]
