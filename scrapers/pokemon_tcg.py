"""
Pokémon TCG API 客户端与数据导入
数据源: https://api.pokemontcg.io/v2
"""
from datetime import datetime
from loguru import logger

from scrapers.base import BaseClient, ClientError


class PokemonTCGAPIError(ClientError):
    """Pokémon TCG API 错误"""


class PokemonTCGClient(BaseClient):
    """系列与卡片数据客户端"""

    BASE_URL = 'https://api.pokemontcg.io/v2'
    PAGE_SIZE = 250
    error_class = PokemonTCGAPIError

    def __init__(self, base_url=None, api_key=None, session=None, timeout=30, delay=0.1):
        super().__init__(base_url or self.BASE_URL, session=session, timeout=timeout, delay=delay)
        if api_key:
            self.session.headers['X-Api-Key'] = api_key

    def _fetch_all(self, path, params=None):
        """按页拉取直到取完 totalCount"""
        results = []
        page = 1

        while True:
            query = dict(params or {}, page=page, pageSize=self.PAGE_SIZE)
            data = self.get_json(path, query)
            items = data.get('data') or []
            results.extend(items)

            total = data.get('totalCount', 0)
            logger.debug(f"{path} 第 {page} 页: {len(items)} 条 ({len(results)}/{total})")

            if not items or len(results) >= total:
                break
            page += 1

        return results

    def fetch_sets(self):
        """全部系列，按发售日期排序"""
        return self._fetch_all('/sets', {'orderBy': 'releaseDate'})

    def fetch_cards(self, set_id=None):
        """全部卡片或某系列的卡片"""
        params = {'q': f'set.id:{set_id}'} if set_id else {}
        return self._fetch_all('/cards', params)


# ===== API 数据 -> 数据库字段 =====

def set_row(api_set):
    return {
        'id': api_set['id'],
        'name': api_set['name'],
        'series': api_set.get('series'),
        'ptcgo_code': api_set.get('ptcgoCode'),
        'printed_total': api_set.get('printedTotal'),
        'total': api_set.get('total'),
        'release_date': api_set.get('releaseDate'),
        'images': api_set.get('images') or {},
    }


def card_row(api_card):
    return {
        'id': api_card['id'],
        'set_id': api_card['set']['id'],
        'number': api_card['number'],
        'name': api_card['name'],
        'supertype': api_card.get('supertype'),
        'subtypes': api_card.get('subtypes') or [],
        'hp': api_card.get('hp'),
        'types': api_card.get('types') or [],
        'rarity': api_card.get('rarity'),
        'artist': api_card.get('artist'),
        'images': api_card.get('images') or {},
    }


def cardmarket_price_rows(api_card):
    """
    Cardmarket 价格是一组平铺字段，拆成 normal 与 reverse_holofoil 两行 (EUR)
    """
    cardmarket = api_card.get('cardmarket') or {}
    prices = cardmarket.get('prices') or {}
    if not prices:
        return []

    base = {
        'card_id': api_card['id'],
        'source': 'cardmarket',
        'currency': 'EUR',
        'url': cardmarket.get('url'),
        'last_updated': cardmarket.get('updatedAt'),
    }
    rows = []

    if prices.get('averageSellPrice') or prices.get('lowPrice') or prices.get('avg1'):
        rows.append(dict(
            base,
            variant='normal',
            external_variant=None,
            low=prices.get('lowPrice'),
            mid=prices.get('averageSellPrice'),
            market=prices.get('averageSellPrice'),
            average_sell_price=prices.get('averageSellPrice'),
            german_pro_low=prices.get('germanProLow'),
            suggested_price=prices.get('suggestedPrice'),
            low_price_ex_plus=prices.get('lowPriceExPlus'),
            trend_price=prices.get('trendPrice'),
            avg_1_day=prices.get('avg1'),
            avg_7_day=prices.get('avg7'),
            avg_30_day=prices.get('avg30'),
        ))

    if prices.get('reverseHoloSell') or prices.get('reverseHoloLow') or prices.get('reverseHoloAvg1'):
        rows.append(dict(
            base,
            variant='reverse_holofoil',
            external_variant=None,
            low=prices.get('reverseHoloLow'),
            mid=prices.get('reverseHoloSell'),
            market=prices.get('reverseHoloSell'),
            average_sell_price=prices.get('reverseHoloSell'),
            trend_price=prices.get('reverseHoloTrend'),
            avg_1_day=prices.get('reverseHoloAvg1'),
            avg_7_day=prices.get('reverseHoloAvg7'),
            avg_30_day=prices.get('reverseHoloAvg30'),
        ))

    return rows


def tcgplayer_price_rows(api_card):
    """TCGplayer 每个版本键一行 (USD)，无法识别的版本键跳过"""
    from app.variants.mapper import map_variant_from_source

    tcgplayer = api_card.get('tcgplayer') or {}
    rows = {}

    for external, data in (tcgplayer.get('prices') or {}).items():
        variant = map_variant_from_source('tcgplayer', external)
        if not variant:
            logger.warning(f"跳过未知的 TCGplayer 版本 '{external}' ({api_card['id']})")
            continue
        if not isinstance(data, dict) or variant in rows:
            continue

        rows[variant] = {
            'card_id': api_card['id'],
            'source': 'tcgplayer',
            'variant': variant,
            'external_variant': external,
            'currency': 'USD',
            'url': tcgplayer.get('url'),
            'last_updated': tcgplayer.get('updatedAt'),
            'low': data.get('low'),
            'mid': data.get('mid'),
            'high': data.get('high'),
            'market': data.get('market'),
            'direct_low': data.get('directLow'),
        }

    return list(rows.values())


# ===== 导入 =====

def _upsert(model, key, row):
    """按 key 字段查找，存在则更新，否则新建"""
    from app import db

    obj = model.query.filter_by(**{k: row[k] for k in key}).first()
    created = obj is None
    if created:
        obj = model()
        db.session.add(obj)
    for field, value in row.items():
        setattr(obj, field, value)
    return created


def ingest_sets(app, client=None):
    """
    导入全部系列

    Returns:
        {'created': n, 'updated': n}
    """
    from app import db
    from app.models import TCGSet

    client = client or _client_from_config(app)
    stats = {'created': 0, 'updated': 0}

    with app.app_context():
        for api_set in client.fetch_sets():
            if _upsert(TCGSet, ['id'], set_row(api_set)):
                stats['created'] += 1
            else:
                stats['updated'] += 1
        db.session.commit()

    logger.info(f"系列导入完成: 新增 {stats['created']}, 更新 {stats['updated']}")
    return stats


def ingest_cards(app, set_id=None, client=None):
    """
    导入卡片 (同时写入价格)

    Args:
        set_id: 只导入该系列；为空时导入数据库中所有系列
    """
    from app import db
    from app.models import TCGSet, Card, CardPrice

    client = client or _client_from_config(app)
    stats = {'created': 0, 'updated': 0, 'prices': 0, 'skipped': 0}

    with app.app_context():
        set_ids = [set_id] if set_id else [s.id for s in TCGSet.query.order_by(TCGSet.release_date).all()]

        for sid in set_ids:
            if db.session.get(TCGSet, sid) is None:
                logger.warning(f"系列 {sid} 不存在，先运行 ingest --sets")
                stats['skipped'] += 1
                continue

            cards = client.fetch_cards(sid)
            for api_card in cards:
                if _upsert(Card, ['id'], card_row(api_card)):
                    stats['created'] += 1
                else:
                    stats['updated'] += 1

                for row in cardmarket_price_rows(api_card) + tcgplayer_price_rows(api_card):
                    _upsert(CardPrice, ['card_id', 'source', 'variant'], row)
                    stats['prices'] += 1

            db.session.commit()
            logger.info(f"系列 {sid}: {len(cards)} 张卡片")

    logger.info(f"卡片导入完成: {stats}")
    return stats


def ingest_prices(app, set_id=None, client=None):
    """只更新已存在卡片的价格"""
    from app import db
    from app.models import TCGSet, Card, CardPrice

    client = client or _client_from_config(app)
    stats = {'prices': 0, 'skipped_cards': 0}

    with app.app_context():
        set_ids = [set_id] if set_id else [s.id for s in TCGSet.query.order_by(TCGSet.release_date).all()]

        for sid in set_ids:
            existing = {c.id for c in Card.query.filter_by(set_id=sid).all()}
            for api_card in client.fetch_cards(sid):
                if api_card['id'] not in existing:
                    stats['skipped_cards'] += 1
                    continue
                for row in cardmarket_price_rows(api_card) + tcgplayer_price_rows(api_card):
                    _upsert(CardPrice, ['card_id', 'source', 'variant'], row)
                    stats['prices'] += 1
            db.session.commit()

    logger.info(f"价格更新完成 ({datetime.utcnow():%Y-%m-%d %H:%M}): {stats}")
    return stats


def _client_from_config(app):
    return PokemonTCGClient(
        base_url=app.config.get('POKEMON_TCG_API_URL'),
        api_key=app.config.get('POKEMON_TCG_API_KEY')
    )
