"""
收藏、版本数量与用户偏好路由测试
"""
import pytest
from app import create_app, db
from app.models import TCGSet, Card, CardPrice, User, CollectionItem


@pytest.fixture
def app():
    """创建测试应用"""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        _create_test_data()
        yield app
        db.drop_all()


@pytest.fixture
def client(app):
    """创建测试客户端"""
    return app.test_client()


@pytest.fixture
def auth_client(client):
    """已登录的客户端"""
    response = client.post('/auth/login', json={'username': 'ash', 'password': 'pikachu123'})
    assert response.status_code == 200
    return client


def _create_test_data():
    db.session.add_all([
        TCGSet(id='sv1', name='Scarlet & Violet', series='Scarlet & Violet', total=4,
               release_date='2023/03/31'),
        TCGSet(id='sv2', name='Paldea Evolved', series='Scarlet & Violet', total=2,
               release_date='2023/06/09'),
    ])
    db.session.commit()

    db.session.add_all([
        Card(id='sv1-1', set_id='sv1', number='1', name='Pineco', supertype='Pokémon', rarity='Common'),
        Card(id='sv1-2', set_id='sv1', number='2', name='Forretress', supertype='Pokémon', rarity='Rare'),
        Card(id='sv2-1', set_id='sv2', number='1', name='Tarountula', supertype='Pokémon', rarity='Common'),
    ])
    db.session.add(CardPrice(card_id='sv1-1', source='tcgplayer', variant='normal',
                             external_variant='normal', currency='USD', market=0.1))

    user = User(username='ash', email='ash@example.com')
    user.set_password('pikachu123')
    db.session.add(user)
    db.session.commit()


def _user_id():
    return User.query.filter_by(username='ash').first().id


class TestVariantQuantities:
    """版本数量"""

    def test_requires_login(self, client):
        response = client.post('/api/variants/quantities', json={'cardId': 'sv1-1', 'variant': 'normal',
                                                                 'quantity': 1})
        assert response.status_code == 401

    def test_set_and_get_quantity(self, auth_client):
        response = auth_client.post('/api/variants/quantities', json={
            'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 3, 'condition': 'near_mint'
        })
        assert response.status_code == 200

        response = auth_client.get('/api/variants/quantities?cardId=sv1-1')
        assert response.get_json()['quantities'] == {'normal': 3}

        item = CollectionItem.query.filter_by(card_id='sv1-1').first()
        assert item.condition == 'near_mint'

    def test_zero_quantity_deletes(self, auth_client):
        auth_client.post('/api/variants/quantities', json={'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2})
        auth_client.post('/api/variants/quantities', json={'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 0})

        assert CollectionItem.query.count() == 0

    @pytest.mark.parametrize('payload', [
        {'variant': 'normal', 'quantity': 1},
        {'cardId': 'sv1-1', 'variant': 'shiny', 'quantity': 1},
        {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': -1},
        {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 10000},
        {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': '3'},
        {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': True},
    ])
    def test_invalid_update(self, auth_client, payload):
        response = auth_client.post('/api/variants/quantities', json=payload)
        assert response.status_code == 400

    def test_quantity_limit_from_config(self, app, auth_client):
        app.config['MAX_VARIANT_QUANTITY'] = 10
        update = {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 11}

        response = auth_client.post('/api/variants/quantities', json=update)
        assert response.get_json()['error'] == 'quantity must be between 0 and 10'

        response = auth_client.put('/api/variants/quantities', json={'updates': [update]})
        assert response.get_json()['error'] == 'Update 0: quantity must be between 0 and 10'
        assert CollectionItem.query.count() == 0

    def test_unknown_card(self, auth_client):
        response = auth_client.post('/api/variants/quantities', json={
            'cardId': 'nope', 'variant': 'normal', 'quantity': 1
        })
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Card not found'

    def test_bulk_update(self, auth_client):
        response = auth_client.put('/api/variants/quantities', json={'updates': [
            {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2},
            {'cardId': 'sv1-1', 'variant': 'reverse_holo_standard', 'quantity': 1},
            {'cardId': 'sv1-2', 'variant': 'holo', 'quantity': 4},
        ]})
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Successfully updated 3 variant quantities'

        response = auth_client.get('/api/variants/quantities?cardIds=sv1-1,sv1-2')
        assert response.get_json()['data'] == {
            'sv1-1': {'normal': 2, 'reverse_holo_standard': 1},
            'sv1-2': {'holo': 4}
        }

    def test_bulk_update_is_all_or_nothing(self, auth_client):
        """任何一条无效则全部不写入"""
        response = auth_client.put('/api/variants/quantities', json={'updates': [
            {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2},
            {'cardId': 'nope', 'variant': 'normal', 'quantity': 1},
        ]})
        assert response.status_code == 400
        assert CollectionItem.query.count() == 0

        response = auth_client.put('/api/variants/quantities', json={'updates': [
            {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2},
            {'cardId': 'sv1-1', 'variant': 'gold', 'quantity': 1},
        ]})
        assert response.get_json()['error'] == 'Update 1: invalid variant type'

    def test_bulk_update_limits(self, auth_client):
        assert auth_client.put('/api/variants/quantities', json={'updates': []}).status_code == 400

        updates = [{'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 1}] * 101
        response = auth_client.put('/api/variants/quantities', json={'updates': updates})
        assert response.get_json()['error'] == 'Maximum 100 updates per request'

    def test_get_requires_ids(self, auth_client):
        assert auth_client.get('/api/variants/quantities').status_code == 400
        assert auth_client.get('/api/variants/quantities?cardIds=,,').status_code == 400

    def test_legacy_bulk(self, auth_client):
        auth_client.post('/api/variants/quantities', json={'cardId': 'sv1-1', 'variant': 'holo', 'quantity': 1})

        response = auth_client.post('/api/variants/bulk', json={'cardIds': ['sv1-1', 'sv1-2']})
        assert response.get_json()['data'] == {'sv1-1': {'holo': 1}, 'sv1-2': {}}

        response = auth_client.post('/api/variants/bulk', json={'cardIds': []})
        assert response.status_code == 400

    def test_legacy_bulk_get_not_allowed(self, client):
        response = client.get('/api/variants/bulk')
        assert response.status_code == 405
        assert 'endpoints' in response.get_json()


class TestVariantEngineRoute:
    """版本推断路由"""

    def test_single_by_id(self, client):
        response = client.post('/api/variants/engine', json={'mode': 'single', 'cardId': 'sv1-1'})
        data = response.get_json()['data']

        assert [v['type'] for v in data['variants']] == ['normal', 'reverse_holo_standard']
        assert data['metadata']['source'] == 'tcgplayer'

    def test_single_with_card_payload(self, client):
        card = {
            'id': 'custom-1',
            'number': '4',
            'rarity': 'Rare Holo',
            'set': {'id': 'base1', 'series': 'Base', 'release_date': '1999/01/09'},
            'tcgplayer_prices': {}
        }
        response = client.post('/api/variants/engine', json={'mode': 'single', 'card': card})
        data = response.get_json()['data']

        assert [v['type'] for v in data['variants']] == ['holo', 'first_edition']

    def test_single_with_user_quantities(self, auth_client):
        auth_client.post('/api/variants/quantities', json={'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 5})

        response = auth_client.post('/api/variants/engine', json={
            'mode': 'single', 'cardId': 'sv1-1', 'includeUserQuantities': True
        })
        variants = response.get_json()['data']['variants']
        assert variants[0] == {'type': 'normal', 'userQuantity': 5}

    def test_bulk_by_set(self, client):
        response = client.post('/api/variants/engine', json={'mode': 'bulk', 'setId': 'sv1'})
        data = response.get_json()['data']

        assert set(data['results']) == {'sv1-1', 'sv1-2'}
        assert data['errors'] == []

    def test_bulk_by_set_over_limit(self, app, client):
        app.config['MAX_BULK_CARDS'] = 1
        response = client.post('/api/variants/engine', json={'mode': 'bulk', 'setId': 'sv1'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Maximum 1 cards per bulk request'

    def test_basic_energy_from_database(self, client):
        """数据库中的 subtypes 传给规则引擎"""
        db.session.add(TCGSet(id='zsv10pt5', name='Black Bolt', series='Scarlet & Violet', total=172,
                              release_date='2025/07/18'))
        db.session.add(Card(id='zsv10pt5-80', set_id='zsv10pt5', number='80', name='Basic Lightning Energy',
                            supertype='Energy', subtypes=['Basic'], rarity=None))
        db.session.commit()

        response = client.post('/api/variants/engine', json={'mode': 'single', 'cardId': 'zsv10pt5-80'})
        data = response.get_json()['data']

        assert [v['type'] for v in data['variants']] == ['normal', 'reverse_holo_standard']

    def test_bulk_by_ids_reports_missing(self, client):
        response = client.post('/api/variants/engine', json={'mode': 'bulk', 'cardIds': ['sv1-1', 'nope']})
        data = response.get_json()['data']

        assert list(data['results']) == ['sv1-1']
        assert data['errors'] == [{'cardId': 'nope', 'error': 'Card not found'}]

    def test_invalid_requests(self, client):
        assert client.post('/api/variants/engine', json={'mode': 'all'}).status_code == 400
        assert client.post('/api/variants/engine', json={'mode': 'single'}).status_code == 400
        assert client.post('/api/variants/engine', json={'mode': 'bulk'}).status_code == 400
        assert client.post('/api/variants/engine', json={'mode': 'bulk', 'setId': 'nope'}).status_code == 404

        too_many = {'mode': 'bulk', 'cardIds': [f'c{i}' for i in range(501)]}
        assert client.post('/api/variants/engine', json=too_many).status_code == 400


class TestSetCollection:
    """系列收藏统计"""

    def test_summary_and_reset(self, auth_client):
        auth_client.put('/api/variants/quantities', json={'updates': [
            {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2},
            {'cardId': 'sv1-1', 'variant': 'reverse_holo_standard', 'quantity': 1},
            {'cardId': 'sv2-1', 'variant': 'normal', 'quantity': 1},
        ]})

        response = auth_client.get('/api/user/collection/set/sv1')
        assert response.get_json()['data'] == {
            'setId': 'sv1',
            'setName': 'Scarlet & Violet',
            'uniqueCards': 1,
            'totalQuantity': 3,
            'totalCardsInSet': 4,
            'completionPercentage': 25.0
        }

        response = auth_client.delete('/api/user/collection/set/sv1')
        data = response.get_json()
        assert data['deletedCount'] == 2
        assert data['totalQuantity'] == 3

        # 其他系列不受影响
        assert CollectionItem.query.count() == 1

    def test_unknown_set(self, auth_client):
        assert auth_client.get('/api/user/collection/set/nope').status_code == 404
        assert auth_client.delete('/api/user/collection/set/nope').status_code == 404

    def test_fast_collection(self, auth_client):
        auth_client.put('/api/variants/quantities', json={'updates': [
            {'cardId': 'sv1-1', 'variant': 'reverse_holo_standard', 'quantity': 1},
            {'cardId': 'sv1-1', 'variant': 'normal', 'quantity': 2},
            {'cardId': 'sv2-1', 'variant': 'holo', 'quantity': 1},
        ]})

        response = auth_client.get('/api/collection/fast')
        data = response.get_json()['data']

        assert data['totalCards'] == 2
        assert data['totalQuantity'] == 4

        card = next(c for c in data['cards'] if c['id'] == 'sv1-1')
        # 按显示顺序排列
        assert [v['type'] for v in card['variants']] == ['normal', 'reverse_holo_standard']
        assert card['totalOwned'] == 3
        assert card['setName'] == 'Scarlet & Violet'


class TestSetPreferences:
    """大师收集偏好"""

    def test_default_and_update(self, auth_client):
        response = auth_client.get('/api/user/set-preferences?setId=sv1')
        assert response.get_json()['data'] == {'setId': 'sv1', 'isMasterSet': False}

        response = auth_client.post('/api/user/set-preferences', json={'setId': 'sv1', 'isMasterSet': True})
        assert response.get_json()['data']['isMasterSet'] is True

        response = auth_client.get('/api/user/set-preferences')
        prefs = response.get_json()['data']
        assert [(p['setId'], p['isMasterSet']) for p in prefs] == [('sv1', True)]

    def test_invalid(self, auth_client):
        response = auth_client.post('/api/user/set-preferences', json={'setId': 'sv1', 'isMasterSet': 'yes'})
        assert response.status_code == 400

        response = auth_client.post('/api/user/set-preferences', json={'setId': 'nope', 'isMasterSet': True})
        assert response.status_code == 404


class TestUserPreferences:
    """货币 / 价格来源偏好"""

    def test_get_defaults(self, auth_client):
        data = auth_client.get('/api/user/preferences').get_json()['data']
        assert data['preferred_currency'] == 'EUR'
        assert data['preferred_price_source'] == 'cardmarket'

    def test_partial_update(self, auth_client):
        response = auth_client.post('/api/user/preferences', json={'preferred_currency': 'nok'})
        data = response.get_json()['data']

        assert data['preferred_currency'] == 'NOK'
        assert data['preferred_price_source'] == 'cardmarket'
        assert db.session.get(User, _user_id()).preferred_currency == 'NOK'

    def test_invalid_update(self, auth_client):
        response = auth_client.post('/api/user/preferences', json={'preferred_currency': 'JPY'})
        data = response.get_json()

        assert response.status_code == 400
        assert data['details'] == [
            "Currency 'JPY' is not supported. Supported currencies: EUR, USD, GBP, NOK"
        ]

        response = auth_client.post('/api/user/preferences', json=['EUR'])
        assert response.get_json()['error'] == 'Preferences must be an object'
