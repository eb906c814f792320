def test_index_lists_categories(client):
    res = client.get('/')
    assert res.status_code == 200
    data = res.get_json()
    assert data['name'] == 'TestCraft'
    assert data['categories'] == ['1', '2', '3', '4']


def test_vote_page_for_unknown_category_redirects(client):
    res = client.get('/vote/7')
    assert res.status_code == 302
    assert client.get('/vote/3').get_json()['category'] == '3'


def test_submit_vote_with_form(client, relay):
    res = client.post('/vote/2', data={'username': 'Steve_1'}, headers={'X-Forwarded-For': '203.0.113.5, 10.0.0.1'})
    assert res.status_code == 201
    assert res.get_json()['status'] == 'accepted'
    assert relay.calls[0][:2] == ('Steve_1', 'TestCraft2')


def test_submit_vote_records_forwarded_address(client, flask_app):
    client.post('/vote/1', json={'username': 'Steve_1'}, headers={'X-Forwarded-For': '203.0.113.5, 10.0.0.1'})
    service = flask_app.extensions['vote_service']
    assert service.ledgers.load('1')['Steve_1']['ip'] == '203.0.113.5'


def test_real_ip_header_used_when_no_forwarded_for(client, flask_app):
    client.post('/vote/1', json={'username': 'Steve_1'}, headers={'X-Real-IP': '198.51.100.7'})
    assert flask_app.extensions['vote_service'].ledgers.load('1')['Steve_1']['ip'] == '198.51.100.7'


def test_invalid_username_returns_400(client, relay):
    res = client.post('/vote/1', json={'username': 'bad name!'})
    assert res.status_code == 400
    assert res.get_json()['reason'] == 'invalid_format'
    assert relay.calls == []


def test_missing_username_returns_400(client):
    assert client.post('/vote/1', json={}).status_code == 400


def test_unknown_category_returns_404(client):
    res = client.post('/vote/5', json={'username': 'Steve_1'})
    assert res.status_code == 404


def test_cooldown_returns_429_with_wait_time(client):
    assert client.post('/vote/1', json={'username': 'Steve_1'}).status_code == 201
    res = client.post('/vote/1', json={'username': 'Steve_1'})
    assert res.status_code == 429
    data = res.get_json()
    assert data['reason'] == 'cooldown'
    assert 1435 <= data['remaining_minutes'] <= 1440
    assert 'minutes before voting again' in data['message']


def test_same_client_other_name_hits_cooldown(client):
    assert client.post('/vote/1', json={'username': 'Steve_1'}).status_code == 201
    assert client.post('/vote/1', json={'username': 'Alex_2'}).status_code == 429


def test_relay_failure_returns_502(client, relay):
    relay.fail_with = 'timed out'
    res = client.post('/vote/1', json={'username': 'Steve_1'})
    assert res.status_code == 502
    assert res.get_json()['status'] == 'relay_failed'


def test_leaderboard_endpoint(client):
    for i, name in enumerate(['Steve_1', 'Alex_2']):
        client.post('/vote/1', json={'username': name}, headers={'X-Real-IP': f'10.0.0.{i}'})
    client.post('/vote/2', json={'username': 'Alex_2'}, headers={'X-Real-IP': '10.0.0.9'})

    for method in (client.get, client.post):
        res = method('/leaderboard')
        assert res.status_code == 200
        assert res.get_json() == [
            {'username': 'Alex_2', 'totalvotes': 2},
            {'username': 'Steve_1', 'totalvotes': 1},
        ]


def test_leaderboard_limit(client):
    client.post('/vote/1', json={'username': 'Steve_1'})
    assert client.get('/leaderboard?limit=0').get_json() == []
    assert client.get('/leaderboard?limit=abc').status_code == 400


def test_unknown_route_returns_json_404(client):
    res = client.get('/nope')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Page not found'}


def test_sql_backend_end_to_end(sql_app):
    client = sql_app.test_client()
    assert client.post('/vote/3', json={'username': 'Steve_1'}).status_code == 201
    assert client.post('/vote/3', json={'username': 'Steve_1'}).status_code == 429
    assert client.get('/leaderboard').get_json() == [{'username': 'Steve_1', 'totalvotes': 1}]


def test_leaderboard_cli(flask_app, client):
    client.post('/vote/1', json={'username': 'Steve_1'})
    result = flask_app.test_cli_runner().invoke(args=['leaderboard', '--limit', '5'])
    assert result.exit_code == 0
    assert 'Steve_1' in result.output


def test_oversized_forwarded_for_falls_back_to_peer_address(client, flask_app):
    res = client.post('/vote/1', json={'username': 'Steve_1'}, headers={'X-Forwarded-For': 'a' * 200})
    assert res.status_code == 201
    assert flask_app.extensions['vote_service'].ledgers.load('1')['Steve_1']['ip'] == '127.0.0.1'


def test_forwarded_for_junk_cannot_dodge_address_cooldown(client):
    assert client.post('/vote/1', json={'username': 'Steve_1'}).status_code == 201
    res = client.post('/vote/1', json={'username': 'Alex_2'}, headers={'X-Forwarded-For': 'not-an-ip'})
    assert res.status_code == 429


def test_scoped_ipv6_forwarded_for_is_ignored(client, flask_app):
    client.post('/vote/1', json={'username': 'Steve_1'}, headers={'X-Forwarded-For': 'fe80::1%' + 'x' * 100})
    assert flask_app.extensions['vote_service'].ledgers.load('1')['Steve_1']['ip'] == '127.0.0.1'


def test_ipv4_mapped_address_is_unwrapped(client, flask_app):
    client.post('/vote/1', json={'username': 'Steve_1'}, headers={'X-Real-IP': '::ffff:198.51.100.7'})
    assert flask_app.extensions['vote_service'].ledgers.load('1')['Steve_1']['ip'] == '198.51.100.7'


def test_store_failure_after_relay_returns_500(client, flask_app, monkeypatch):
    from voteboard.services.votes.errors import StoreIOError

    def broken_save(category, ledger):
        raise StoreIOError('disk full')

    monkeypatch.setattr(flask_app.extensions['vote_service'].ledgers, 'save', broken_save)
    res = client.post('/vote/1', json={'username': 'Steve_1'})
    assert res.status_code == 500
    assert res.get_json()['status'] == 'store_error'


def test_dotted_names_can_be_disabled(make_app):
    app = make_app(ALLOW_DOTTED_NAMES=False)
    client = app.test_client()
    res = client.post('/vote/1', json={'username': 'alex.b'})
    assert res.status_code == 400
    assert res.get_json()['reason'] == 'invalid_format'
    assert client.post('/vote/1', json={'username': 'alex_b'}).status_code == 201


def test_cooldown_window_is_a_full_day(flask_app):
    service = flask_app.extensions['vote_service']
    t0 = 1_700_000_000_000
    day = 24 * 60 * 60 * 1000
    assert service.submit('1', 'Steve_1', '10.0.0.1', now=t0).status == 'accepted'
    assert service.submit('1', 'Steve_1', '10.0.0.1', now=t0 + day - 1).reason == 'cooldown'
    assert service.submit('1', 'Steve_1', '10.0.0.1', now=t0 + day).status == 'accepted'


def test_debugger_is_off_by_default(monkeypatch):
    import importlib
    import config as config_module

    monkeypatch.delenv('FLASK_DEBUG', raising=False)
    monkeypatch.setattr('dotenv.load_dotenv', lambda *a, **k: False)
    reloaded = importlib.reload(config_module)
    assert reloaded.Config.DEBUG is False
