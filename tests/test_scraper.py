"""
外部 API 客户端测试 (单元测试，不实际请求网络)
"""
import pytest
import requests
from app import create_app, db
from app.models import TCGSet, Card, CardPrice
from scrapers.base import BaseClient, ClientError
from scrapers.exchange_rates import ExchangeRateClient, ExchangeRateAPIError
from scrapers.pokemon_tcg import (
    PokemonTCGClient, PokemonTCGAPIError, set_row, card_row, cardmarket_price_rows,
    tcgplayer_price_rows, ingest_sets, ingest_cards, ingest_prices
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """按顺序返回预设响应，记录请求"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


API_SET = {
    'id': 'sv1',
    'name': 'Scarlet & Violet',
    'series': 'Scarlet & Violet',
    'printedTotal': 198,
    'total': 258,
    'ptcgoCode': 'SVI',
    'releaseDate': '2023/03/31',
    'images': {'symbol': 'https://images.pokemontcg.io/sv1/symbol.png'},
}

API_CARD = {
    'id': 'sv1-1',
    'name': 'Pineco',
    'number': '1',
    'supertype': 'Pokémon',
    'subtypes': ['Basic'],
    'hp': '60',
    'types': ['Grass'],
    'rarity': 'Common',
    'artist': 'Kurata So',
    'images': {'small': 'https://images.pokemontcg.io/sv1/1.png'},
    'set': API_SET,
    'tcgplayer': {
        'url': 'https://prices.pokemontcg.io/tcgplayer/sv1-1',
        'updatedAt': '2024/05/01',
        'prices': {
            'normal': {'low': 0.02, 'mid': 0.1, 'high': 2.0, 'market': 0.08, 'directLow': 0.05},
            'reverseHolofoil': {'low': 0.1, 'mid': 0.25, 'high': 3.0, 'market': 0.2},
            'goldStar': {'market': 99.0},
        },
    },
    'cardmarket': {
        'url': 'https://prices.pokemontcg.io/cardmarket/sv1-1',
        'updatedAt': '2024/05/01',
        'prices': {
            'averageSellPrice': 0.09,
            'lowPrice': 0.02,
            'trendPrice': 0.1,
            'germanProLow': 0.03,
            'suggestedPrice': 0.12,
            'lowPriceExPlus': 0.04,
            'avg1': 0.1,
            'avg7': 0.09,
            'avg30': 0.08,
            'reverseHoloSell': 0.2,
            'reverseHoloLow': 0.05,
            'reverseHoloTrend': 0.22,
            'reverseHoloAvg1': 0.2,
            'reverseHoloAvg7': 0.21,
            'reverseHoloAvg30': 0.19,
        },
    },
}


class TestBaseClient:
    """基类错误处理"""

    def test_get_json(self):
        session = FakeSession(FakeResponse({'ok': True}))
        client = BaseClient('https://api.example.com/', session=session)

        assert client.get_json('/things', {'page': 1}) == {'ok': True}
        assert session.calls == [('https://api.example.com/things', {'page': 1})]
        assert session.headers['User-Agent'] == 'Lumidex/1.0'

    def test_http_error(self):
        client = BaseClient('https://api.example.com', session=FakeSession(FakeResponse({}, 429)))
        with pytest.raises(ClientError) as exc:
            client.get_json('things')
        assert exc.value.status_code == 429

    def test_network_error(self):
        session = FakeSession(requests.ConnectionError('connection refused'))
        client = BaseClient('https://api.example.com', session=session)
        with pytest.raises(ClientError):
            client.get_json('things')

    def test_invalid_json(self):
        session = FakeSession(FakeResponse(ValueError('Expecting value')))
        client = BaseClient('https://api.example.com', session=session)
        with pytest.raises(ClientError, match='Invalid JSON'):
            client.get_json('things')


class TestExchangeRateClient:
    """汇率客户端"""

    def test_fetch_rates(self):
        session = FakeSession(FakeResponse({'base': 'EUR', 'date': '2024-05-01', 'rates': {'USD': 1.08}}))
        client = ExchangeRateClient(session=session)

        data = client.fetch_rates('EUR')

        assert data == {'base': 'EUR', 'date': '2024-05-01', 'rates': {'USD': 1.08}}
        assert session.calls[0][0] == 'https://api.exchangerate-api.io/v4/latest/EUR'

    def test_api_reports_failure(self):
        session = FakeSession(FakeResponse({'success': False, 'error': {'info': 'Invalid base'}}))
        with pytest.raises(ExchangeRateAPIError, match='Invalid base'):
            ExchangeRateClient(session=session).fetch_rates('XYZ')

    def test_missing_rates(self):
        session = FakeSession(FakeResponse({'base': 'EUR'}))
        with pytest.raises(ExchangeRateAPIError):
            ExchangeRateClient(session=session).fetch_rates('EUR')

    def test_http_error_is_domain_error(self):
        session = FakeSession(FakeResponse({}, 503))
        with pytest.raises(ExchangeRateAPIError) as exc:
            ExchangeRateClient(session=session).fetch_rates('EUR')
        assert exc.value.status_code == 503


class TestPokemonTCGClient:
    """Pokémon TCG API 客户端"""

    def test_api_key_header(self):
        client = PokemonTCGClient(api_key='secret', session=FakeSession())
        assert client.session.headers['X-Api-Key'] == 'secret'

    def test_pagination(self):
        session = FakeSession(
            FakeResponse({'data': [{'id': 'sv1-1'}, {'id': 'sv1-2'}], 'totalCount': 3}),
            FakeResponse({'data': [{'id': 'sv1-3'}], 'totalCount': 3}),
        )
        client = PokemonTCGClient(session=session, delay=0)

        cards = client.fetch_cards('sv1')

        assert [c['id'] for c in cards] == ['sv1-1', 'sv1-2', 'sv1-3']
        assert session.calls[0] == ('https://api.pokemontcg.io/v2/cards',
                                    {'q': 'set.id:sv1', 'page': 1, 'pageSize': 250})
        assert session.calls[1][1]['page'] == 2

    def test_empty_page_stops(self):
        session = FakeSession(FakeResponse({'data': [], 'totalCount': 10}))
        assert PokemonTCGClient(session=session, delay=0).fetch_sets() == []

    def test_error_class(self):
        session = FakeSession(FakeResponse({}, 404))
        with pytest.raises(PokemonTCGAPIError):
            PokemonTCGClient(session=session, delay=0).fetch_sets()


class TestRowBuilders:
    """API 数据 -> 数据库字段"""

    def test_set_and_card_rows(self):
        assert set_row(API_SET)['ptcgo_code'] == 'SVI'
        row = card_row(API_CARD)
        assert row['set_id'] == 'sv1'
        assert row['subtypes'] == ['Basic']

    def test_cardmarket_rows(self):
        rows = {r['variant']: r for r in cardmarket_price_rows(API_CARD)}

        assert set(rows) == {'normal', 'reverse_holofoil'}
        assert rows['normal']['currency'] == 'EUR'
        assert rows['normal']['low'] == 0.02
        assert rows['normal']['trend_price'] == 0.1
        assert rows['reverse_holofoil']['market'] == 0.2
        assert rows['reverse_holofoil']['avg_30_day'] == 0.19

    def test_cardmarket_without_reverse(self):
        card = dict(API_CARD, cardmarket={'prices': {'averageSellPrice': 1.0}})
        assert [r['variant'] for r in cardmarket_price_rows(card)] == ['normal']
        assert cardmarket_price_rows(dict(API_CARD, cardmarket=None)) == []

    def test_tcgplayer_rows(self):
        rows = tcgplayer_price_rows(API_CARD)

        # 未知版本键被跳过
        assert [(r['variant'], r['external_variant']) for r in rows] == [
            ('normal', 'normal'), ('reverse_holofoil', 'reverseHolofoil')
        ]
        assert rows[0]['currency'] == 'USD'
        assert rows[0]['direct_low'] == 0.05

    def test_tcgplayer_duplicate_variant(self):
        card = dict(API_CARD, tcgplayer={'prices': {
            'holofoil': {'market': 5.0},
            'unlimitedHolofoil': {'market': 4.0},
        }})
        rows = tcgplayer_price_rows(card)
        assert len(rows) == 1
        assert rows[0]['market'] == 5.0


class FakePokemonClient:
    def __init__(self, cards):
        self.cards = cards

    def fetch_sets(self):
        return [API_SET]

    def fetch_cards(self, set_id=None):
        return [c for c in self.cards if c['set']['id'] == set_id]


@pytest.fixture
def app():
    """创建测试应用"""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


class TestIngest:
    """导入数据库"""

    def test_ingest_sets(self, app):
        fake = FakePokemonClient([API_CARD])
        assert ingest_sets(app, client=fake) == {'created': 1, 'updated': 0}
        assert ingest_sets(app, client=fake) == {'created': 0, 'updated': 1}

        assert db.session.get(TCGSet, 'sv1').total == 258

    def test_ingest_cards_with_prices(self, app):
        fake = FakePokemonClient([API_CARD])
        ingest_sets(app, client=fake)

        stats = ingest_cards(app, set_id='sv1', client=fake)

        assert stats['created'] == 1
        assert stats['prices'] == 4
        assert db.session.get(Card, 'sv1-1').name == 'Pineco'
        assert CardPrice.query.filter_by(card_id='sv1-1', source='tcgplayer').count() == 2

    def test_ingest_cards_unknown_set(self, app):
        stats = ingest_cards(app, set_id='nope', client=FakePokemonClient([]))
        assert stats['skipped'] == 1

    def test_ingest_prices_updates_existing(self, app):
        fake = FakePokemonClient([API_CARD])
        ingest_sets(app, client=fake)
        ingest_cards(app, client=fake)

        new_card = dict(API_CARD, id='sv1-2', number='2')
        updated = dict(API_CARD, cardmarket={'prices': {'averageSellPrice': 0.5}})
        stats = ingest_prices(app, set_id='sv1', client=FakePokemonClient([updated, new_card]))

        assert stats == {'prices': 3, 'skipped_cards': 1}
        assert CardPrice.query.count() == 4
        normal = CardPrice.query.filter_by(card_id='sv1-1', source='cardmarket', variant='normal').one()
        assert normal.market == 0.5
