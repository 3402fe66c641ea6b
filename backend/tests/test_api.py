def test_create_game(client):
    res = client.post('/api/games/create')
    assert res.status_code == 201
    data = res.get_json()
    code = data['game_code']
    assert len(code) == 6
    assert data['facilitator_link'] == f'http://testserver/?game={code}&role=facilitator'
    assert data['participant_link'] == f'http://testserver/?game={code}'


def test_create_game_with_settings(client):
    res = client.post('/api/games/create', json={'rounds': 5, 'round_length': 240, 'mode': 'Story'})
    code = res.get_json()['game_code']
    state = client.get(f'/api/games/{code}/state').get_json()
    assert state['rounds'] == 5
    assert state['round_length'] == 240
    assert state['time_left'] == 240
    assert state['mode'] == 'Story'
    assert state['twist_enabled'] is True

    res = client.post('/api/games/create', json={'rounds': 0})
    assert res.status_code == 400


def test_join_and_state(client):
    code = client.post('/api/games/create').get_json()['game_code']
    res = client.post(f'/api/games/{code.lower()}/teams', json={'name': '  The Innovators  '})
    assert res.status_code == 201
    assert res.get_json()['name'] == 'The Innovators'

    res = client.post('/api/games/join', json={'game': code})
    assert res.status_code == 200
    joined = res.get_json()
    assert joined['role'] == 'participant'
    game = joined['state']
    assert game['game_code'] == code
    assert game['phase'] == 'setup'
    assert game['current_round'] == 1
    assert game['rounds'] == 3
    assert game['time_left'] == 180
    assert game['is_running'] is False
    assert game['twist_length'] == 60
    assert any(t['name'] == 'The Innovators' and t['score'] == 0 for t in game['teams'])

    res = client.post('/api/games/join?role=facilitator', json={'game': code})
    assert res.get_json()['role'] == 'facilitator'


def test_unknown_game(client):
    assert client.get('/api/games/NOPE42/state').status_code == 404
    assert client.post('/api/games/join', json={'game': 'NOPE42'}).status_code == 404
    assert client.post('/api/games/join', json={}).status_code == 400


def test_blank_team_name_is_ignored(client, make_game):
    code, _ = make_game(teams=('Alpha',))
    res = client.post(f'/api/games/{code}/teams', json={'name': '   '})
    assert res.status_code == 204
    assert len(client.get(f'/api/games/{code}/state').get_json()['teams']) == 1


def test_duplicate_team_names_are_allowed(client, make_game):
    code, _ = make_game(teams=('Alpha', 'Alpha'))
    names = [t['name'] for t in client.get(f'/api/games/{code}/state').get_json()['teams']]
    assert names == ['Alpha', 'Alpha']


def test_remove_team_clears_its_round_data(client, make_game, act):
    code, teams = make_game(teams=('Alpha', 'Beta', 'Gamma'), twist_enabled=False)
    alpha, beta = teams['Alpha']['id'], teams['Beta']['id']
    act(code, 'start')
    client.put(f'/api/games/{code}/submissions/{alpha}', json={'prompt': 'a'})
    client.put(f'/api/games/{code}/submissions/{beta}', json={'prompt': 'b'})
    act(code, 'timer/stop')
    act(code, 'advance')
    client.put(f'/api/games/{code}/scores/{alpha}', json={'role': 'facilitator', 'clarity': 4})
    client.put(f'/api/games/{code}/scores/{beta}', json={'role': 'facilitator', 'clarity': 2})

    assert client.delete(f'/api/games/{code}/teams/{alpha}').status_code == 200
    state = client.get(f'/api/games/{code}/state').get_json()
    assert str(alpha) not in state['submissions']
    assert str(alpha) not in state['scores']
    assert state['submissions'][str(beta)]['prompt'] == 'b'

    act(code, 'finalize')
    scores = {t['name']: t['score'] for t in client.get(f'/api/games/{code}/state').get_json()['teams']}
    assert scores == {'Beta': 2, 'Gamma': 0}

    assert client.delete(f'/api/games/{code}/teams/{alpha}').status_code == 404


def test_submissions_are_partial_and_open_to_participants(client, make_game):
    code, teams = make_game()
    alpha = teams['Alpha']['id']
    # Not gated on phase
    res = client.put(f'/api/games/{code}/submissions/{alpha}', json={'prompt': 'Be concise.'})
    assert res.status_code == 200
    res = client.put(f'/api/games/{code}/submissions/{alpha}', json={'output': 'Done.'})
    sub = res.get_json()
    assert sub == {'team_id': alpha, 'round': 1, 'prompt': 'Be concise.', 'output': 'Done.', 'notes': ''}

    assert client.put(f'/api/games/{code}/submissions/{alpha}', json={}).status_code == 400
    assert client.put(f'/api/games/{code}/submissions/{alpha}', json={'notes': 5}).status_code == 400
    assert client.put(f'/api/games/{code}/submissions/9999', json={'notes': 'x'}).status_code == 404


def test_scores_are_facilitator_only_and_scoring_only(client, make_game, act):
    code, teams = make_game(twist_enabled=False)
    alpha = teams['Alpha']['id']
    act(code, 'start')
    res = client.put(f'/api/games/{code}/scores/{alpha}', json={'role': 'facilitator', 'clarity': 3})
    assert res.status_code == 409

    act(code, 'timer/stop')
    act(code, 'advance')
    assert client.put(f'/api/games/{code}/scores/{alpha}', json={'clarity': 3}).status_code == 403

    res = client.put(f'/api/games/{code}/scores/{alpha}', json={'role': 'facilitator', 'clarity': -1, 'power': '4'})
    data = res.get_json()
    assert data['clarity'] == 0
    assert data['power'] == 4
    assert data['creativity'] == 0
    assert data['round_total'] == 4

    res = client.put(f'/api/games/{code}/scores/{alpha}', json={'role': 'facilitator', 'power': 'lots'})
    assert res.status_code == 400


def test_settings_update_in_setup_only(client, make_game, act):
    code, _ = make_game()
    res = client.patch(f'/api/games/{code}/settings',
                       json={'role': 'facilitator', 'round_length': 300, 'twist_enabled': False, 'mode': 'Meme'})
    assert res.status_code == 200
    state = res.get_json()
    assert state['round_length'] == 300
    assert state['time_left'] == 300
    assert state['twist_enabled'] is False
    assert state['mode'] == 'Meme'

    bad = [{'rounds': 11}, {'round_length': 10}, {'mode': 'Poetry'}, {'twist_enabled': 'yes'}, {'colour': 'red'}]
    for body in bad:
        res = client.patch(f'/api/games/{code}/settings', json=dict(role='facilitator', **body))
        assert res.status_code == 400, body

    assert client.patch(f'/api/games/{code}/settings', json={'rounds': 4}).status_code == 403

    act(code, 'start')
    res = client.patch(f'/api/games/{code}/settings', json={'role': 'facilitator', 'rounds': 1})
    assert res.status_code == 409


def test_challenge_and_twist_banks(client, make_game):
    code, _ = make_game()
    challenges = client.get(f'/api/games/{code}/challenges').get_json()
    assert len(challenges) == 10
    assert len(client.get(f'/api/games/{code}/twists').get_json()) == 10

    res = client.post(f'/api/games/{code}/challenges',
                      json={'role': 'facilitator', 'mode': 'Speed', 'text': 'Shorten this prompt.'})
    assert res.status_code == 201
    added = res.get_json()
    assert added['mode'] == 'Speed'

    assert client.post(f'/api/games/{code}/challenges',
                       json={'role': 'facilitator', 'mode': 'Any', 'text': 'x'}).status_code == 400
    assert client.post(f'/api/games/{code}/challenges',
                       json={'role': 'facilitator', 'mode': 'Story', 'text': ' '}).status_code == 400
    assert client.post(f'/api/games/{code}/challenges',
                       json={'mode': 'Story', 'text': 'x'}).status_code == 403

    assert client.delete(f'/api/games/{code}/challenges/{added["id"]}?role=facilitator').status_code == 200
    assert client.delete(f'/api/games/{code}/challenges/{added["id"]}?role=facilitator').status_code == 404

    res = client.post(f'/api/games/{code}/twists', json={'role': 'facilitator', 'text': 'Only questions.'})
    assert res.status_code == 201
    twist_id = res.get_json()['id']
    assert client.delete(f'/api/games/{code}/twists/{twist_id}?role=facilitator').status_code == 200
    assert len(client.get(f'/api/games/{code}/twists').get_json()) == 10


def test_delete_game(client, make_game):
    code, _ = make_game()
    assert client.delete(f'/api/games/{code}').status_code == 403
    assert client.delete(f'/api/games/{code}?role=facilitator').status_code == 200
    assert client.get(f'/api/games/{code}/state').status_code == 404


def test_team_name_must_be_text(client, make_game):
    code, _ = make_game(teams=())
    for name in (5, ['Alpha'], {'name': 'Alpha'}, True):
        res = client.post(f'/api/games/{code}/teams', json={'name': name})
        assert res.status_code == 400, name
    res = client.post(f'/api/games/{code}/teams', json={'name': 'x' * 129})
    assert res.status_code == 400
    assert client.post(f'/api/games/{code}/teams', json={'name': 'x' * 128}).status_code == 201
    # A missing name is treated like a blank one
    assert client.post(f'/api/games/{code}/teams', json={}).status_code == 204
    assert len(client.get(f'/api/games/{code}/state').get_json()['teams']) == 1


def test_join_rejects_non_text_code(client):
    assert client.post('/api/games/join', json={'game': 123456}).status_code == 400
    assert client.post('/api/games/join', json={'game_code': ['ABC123']}).status_code == 400


def test_non_finite_numbers_are_rejected(client, make_game, act):
    code, teams = make_game(twist_enabled=False)
    alpha = teams['Alpha']['id']
    res = client.patch(f'/api/games/{code}/settings', data='{"role": "facilitator", "rounds": Infinity}',
                       content_type='application/json')
    assert res.status_code == 400

    act(code, 'start')
    act(code, 'timer/stop')
    act(code, 'advance')
    for raw in ('NaN', 'Infinity', '-Infinity'):
        res = client.put(f'/api/games/{code}/scores/{alpha}', data=f'{{"role": "facilitator", "creativity": {raw}}}',
                         content_type='application/json')
        assert res.status_code == 400, raw
