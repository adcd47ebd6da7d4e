def names(events):
    return [e['name'] for e in events]


def args_of(events, name):
    return [e['args'][0] for e in events if e['name'] == name]


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    received = sio_client.get_received('/ws')
    assert 'connected' in names(received)

    sio_client.emit('join_game', {'game_code': 'abcd'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert args_of(received, 'joined') == [{'room': 'game:ABCD'}]

    sio_client.emit('join_game', {}, namespace='/ws')
    assert 'error' in names(sio_client.get_received('/ws'))


def test_ping(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert args_of(sio_client.get_received('/ws'), 'pong') == [{'n': 1}]


def test_room_receives_state_updates(sio_client, client, new_game):
    code = new_game()['game_code']
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    client.post(f'/api/games/{code}/start')
    updates = args_of(sio_client.get_received('/ws'), 'state_update')
    assert {'game_code': code} in updates


def test_visibility_over_socket_updates_integrity(sio_client, client, new_game):
    code = new_game()['game_code']
    client.post(f'/api/games/{code}/start')
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    # game code falls back to the joined room
    sio_client.emit('visibility_change', {'hidden': True}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert args_of(received, 'tab_switch') == [{'game_code': code, 'count': 1}]
    integrity = args_of(received, 'integrity_update')[0]['integrity']
    assert integrity['tab_switches'] == 1
    assert integrity['is_tab_visible'] is False

    sio_client.emit('visibility_change', {'hidden': 'yes'}, namespace='/ws')
    assert 'error' in names(sio_client.get_received('/ws'))


def test_forfeit_is_broadcast_to_the_game_room(sio_client, client, new_game):
    code = new_game()['game_code']
    client.post(f'/api/games/{code}/start')
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    for hidden in (True, False, True, False, True):
        sio_client.emit('visibility_change', {'game_code': code, 'hidden': hidden}, namespace='/ws')
    forfeits = args_of(sio_client.get_received('/ws'), 'round_forfeit')
    assert forfeits == [{'game_code': code, 'round': 1, 'penalty': 5}]


def test_timeout_is_broadcast_to_the_game_room(sio_client, client, new_game, scheduler):
    code = new_game()['game_code']
    client.post(f'/api/games/{code}/start')
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    scheduler.advance(10)
    assert args_of(sio_client.get_received('/ws'), 'round_timeout') == [{'game_code': code, 'round': 1}]


def test_leaderboard_subscription(sio_client, client, new_game, claims_by_id):
    sio_client.get_received('/ws')
    sio_client.emit('subscribe_leaderboard', {}, namespace='/ws')
    snapshot = args_of(sio_client.get_received('/ws'), 'leaderboard_snapshot')
    assert snapshot == [{'teams': []}]

    code = new_game(rounds=1)['game_code']
    client.post(f'/api/games/{code}/start')
    state = client.get(f'/api/games/{code}/state').get_json()
    answer = claims_by_id[state['current_claim_id']].answer
    client.post(f'/api/games/{code}/answer', json={'verdict': answer, 'confidence': 2})
    client.post(f'/api/games/{code}/finish', json={'predicted_score': 3})

    updates = args_of(sio_client.get_received('/ws'), 'leaderboard_update')
    assert updates[-1]['game_code'] == code
    assert updates[-1]['status'] == 'finished'
    assert updates[-1]['score'] == 3

    sio_client.emit('unsubscribe_leaderboard', {}, namespace='/ws')
    sio_client.get_received('/ws')
    client.delete(f'/api/games/{code}')
    assert args_of(sio_client.get_received('/ws'), 'leaderboard_update') == []


def test_abandon_ends_session_for_room(sio_client, client, new_game):
    code = new_game()['game_code']
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    client.delete(f'/api/games/{code}')
    assert args_of(sio_client.get_received('/ws'), 'session_ended') == [{'game_code': code}]


def test_leave_game(sio_client):
    sio_client.emit('join_game', {'game_code': 'WXYZ'}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('leave_game', {'game_code': 'wxyz'}, namespace='/ws')
    assert args_of(sio_client.get_received('/ws'), 'left') == [{'room': 'game:WXYZ'}]
