from datetime import date

import pytest

from cider_app.app import db
from cider_app.app.batches import service
from cider_app.app.errors import Conflict, NotFound, commit_or_raise
from cider_app.app.models import Batch
from conftest import create_batch, create_org, create_user, login, logout


@pytest.fixture
def org(client, app):
    user_id = create_user(app, 'maker@example.com')
    login(client, 'maker@example.com')
    return create_org(client), user_id


def _set_stage(app, batch_id, stage):
    with app.app_context():
        db.session.get(Batch, batch_id).current_stage = stage
        db.session.commit()


def test_create_batch_stamps_creator_and_initial_stage(client, org):
    org_id, user_id = org
    rv = client.post(f'/api/v1/orgs/{org_id}/batches', json={
        'name': 'Yarlington Mill', 'variety': 'Yarlington Mill', 'volume': 12.5,
        'start_date': '2026-09-30', 'created_by': 999, 'current_stage': 'bottled',
    })
    assert rv.status_code == 201
    data = rv.get_json()
    assert data['volume'] == 12.5
    assert data['created_by'] == user_id
    assert data['current_stage'] == 'pressing'
    assert data['organization_id'] == org_id


@pytest.mark.parametrize('volume', [-5, 0, 0.001, 0.004, 1e30, 'NaN', 'inf', 'lots'])
def test_invalid_volume_rejected(client, org, volume):
    org_id, _ = org
    rv = client.post(f'/api/v1/orgs/{org_id}/batches', json={
        'name': 'Bad', 'variety': 'Bad', 'volume': volume, 'start_date': '2026-09-30'
    })
    assert rv.status_code == 400
    assert 'volume' in rv.get_json()['details']
    with client.application.app_context():
        assert Batch.query.count() == 0


def test_volume_rounded_to_stored_precision(client, org):
    org_id, _ = org
    rv = client.post(f'/api/v1/orgs/{org_id}/batches', json={
        'name': 'Tiny', 'variety': 'Kingston Black', 'volume': 0.005, 'start_date': '2026-09-30'
    })
    assert rv.status_code == 201
    assert rv.get_json()['volume'] == 0.01
    batch_id = rv.get_json()['id']
    assert client.get(f'/api/v1/orgs/{org_id}/batches/{batch_id}').get_json()['volume'] == 0.01


def test_non_object_body_rejected(client, org):
    org_id, _ = org
    for body in ([1, 2], 'x', 7):
        rv = client.post(f'/api/v1/orgs/{org_id}/batches', json=body)
        assert rv.status_code == 400
        assert rv.get_json()['error'] == 'Request body must be a JSON object.'
    with client.application.app_context():
        assert Batch.query.count() == 0


def test_missing_fields_rejected(client, org):
    org_id, _ = org
    rv = client.post(f'/api/v1/orgs/{org_id}/batches', json={'volume': 10})
    assert rv.status_code == 400
    details = rv.get_json()['details']
    assert {'name', 'variety', 'start_date'} <= set(details)
    rv = client.post(f'/api/v1/orgs/{org_id}/batches', json={
        'name': 'A', 'variety': 'B', 'volume': 10, 'start_date': '30/09/2026'
    })
    assert rv.status_code == 400


def test_advance_scenario(client, app, org):
    org_id, _ = org
    x = create_batch(client, org_id, name='X')
    y = create_batch(client, org_id, name='Y')
    _set_stage(app, y, 'bottled')

    rv = client.post(f'/api/v1/orgs/{org_id}/batches/{x}/advance')
    assert rv.status_code == 200
    data = rv.get_json()
    assert data['advanced'] is True
    assert data['previous_stage'] == 'pressing'
    assert data['batch']['current_stage'] == 'fermenting'

    rv = client.post(f'/api/v1/orgs/{org_id}/batches/{y}/advance')
    assert rv.status_code == 200
    data = rv.get_json()
    assert data['advanced'] is False
    assert data['batch']['current_stage'] == 'bottled'
    assert 'already complete' in data['message']


def test_advance_ignores_requested_stage(client, org):
    org_id, _ = org
    batch_id = create_batch(client, org_id)
    rv = client.post(f'/api/v1/orgs/{org_id}/batches/{batch_id}/advance', json={'stage': 'bottled'})
    assert rv.get_json()['batch']['current_stage'] == 'fermenting'


def test_advance_walks_every_stage(client, org):
    org_id, _ = org
    batch_id = create_batch(client, org_id)
    stages = []
    for _ in range(5):
        stages.append(client.post(f'/api/v1/orgs/{org_id}/batches/{batch_id}/advance').get_json()['batch']['current_stage'])
    assert stages == ['fermenting', 'aging', 'bottled', 'bottled', 'bottled']


def test_advance_service_is_scoped_to_organization(client, app, org):
    org_id, user_id = org
    batch_id = create_batch(client, org_id)
    logout(client)
    other_id = create_user(app, 'rival@example.com')
    login(client, 'rival@example.com')
    other_org = create_org(client, name='Rival Cider')

    with app.app_context():
        # the rival is a member of their own org but the batch is not in it
        with pytest.raises(NotFound):
            service.advance(batch_id, other_org, other_id)
        with pytest.raises(NotFound):
            service.advance(batch_id, org_id, other_id)
        assert db.session.get(Batch, batch_id).current_stage == 'pressing'
        result = service.advance(batch_id, org_id, user_id)
        assert result.advanced and result.batch.current_stage == 'fermenting'


def test_update_and_delete_batch(client, org):
    org_id, _ = org
    batch_id = create_batch(client, org_id)
    client.post(f'/api/v1/orgs/{org_id}/batches/{batch_id}/advance')

    rv = client.put(f'/api/v1/orgs/{org_id}/batches/{batch_id}', json={
        'name': 'Renamed', 'variety': 'Bramley', 'volume': 99.99, 'start_date': '2026-10-01'
    })
    assert rv.status_code == 200
    data = rv.get_json()
    assert data['name'] == 'Renamed'
    assert data['volume'] == 99.99
    assert data['start_date'] == '2026-10-01'
    # stage is untouched by edits
    assert data['current_stage'] == 'fermenting'

    rv = client.put(f'/api/v1/orgs/{org_id}/batches/{batch_id}', json={
        'name': 'Renamed', 'variety': 'Bramley', 'volume': 0, 'start_date': '2026-10-01'
    })
    assert rv.status_code == 400

    assert client.delete(f'/api/v1/orgs/{org_id}/batches/{batch_id}').status_code == 200
    assert client.get(f'/api/v1/orgs/{org_id}/batches/{batch_id}').status_code == 404
    assert client.delete(f'/api/v1/orgs/{org_id}/batches/{batch_id}').status_code == 404


def test_list_search_filter_sort(client, app, org):
    org_id, _ = org
    create_batch(client, org_id, name='Alpha', variety='Dabinett', volume=10)
    b = create_batch(client, org_id, name='Bravo', variety='Kingston Black', volume=30)
    create_batch(client, org_id, name='Charlie', variety='dabinett blend', volume=20)
    _set_stage(app, b, 'bottled')
    url = f'/api/v1/orgs/{org_id}/batches'

    def names(rv):
        return [x['name'] for x in rv.get_json()]

    assert names(client.get(url, query_string={'sort': 'name-asc'})) == ['Alpha', 'Bravo', 'Charlie']
    assert names(client.get(url, query_string={'sort': 'name-desc'})) == ['Charlie', 'Bravo', 'Alpha']
    assert names(client.get(url, query_string={'sort': 'volume-high'})) == ['Bravo', 'Charlie', 'Alpha']
    assert names(client.get(url, query_string={'sort': 'volume-low'})) == ['Alpha', 'Charlie', 'Bravo']
    assert names(client.get(url, query_string={'sort': 'oldest'})) == ['Alpha', 'Bravo', 'Charlie']
    assert names(client.get(url)) == ['Charlie', 'Bravo', 'Alpha']

    assert names(client.get(url, query_string={'q': 'DABINETT', 'sort': 'name-asc'})) == ['Alpha', 'Charlie']
    assert names(client.get(url, query_string={'q': 'bra'})) == ['Bravo']
    assert names(client.get(url, query_string={'stage': 'bottled'})) == ['Bravo']
    assert names(client.get(url, query_string={'stage': 'pressing', 'sort': 'name-asc'})) == ['Alpha', 'Charlie']

    assert client.get(url, query_string={'stage': 'drinking'}).status_code == 400
    assert client.get(url, query_string={'sort': 'random'}).status_code == 400


def test_stats(client, app, org):
    org_id, _ = org
    create_batch(client, org_id, volume=10)
    b = create_batch(client, org_id, volume=12.5)
    create_batch(client, org_id, volume=7.5)
    _set_stage(app, b, 'bottled')

    rv = client.get(f'/api/v1/orgs/{org_id}/batches/stats')
    assert rv.status_code == 200
    stats = rv.get_json()
    assert stats['total_batches'] == 3
    assert stats['active_batches'] == 2
    assert stats['total_volume'] == 30.0
    assert stats['by_stage'] == {'pressing': 2, 'fermenting': 0, 'aging': 0, 'bottled': 1}


def test_stats_empty(client, org):
    org_id, _ = org
    stats = client.get(f'/api/v1/orgs/{org_id}/batches/stats').get_json()
    assert stats['total_batches'] == 0
    assert stats['total_volume'] == 0


def test_failed_commit_rolls_back_and_maps_error(app, org):
    _, user_id = org
    with app.app_context():
        db.session.add(Batch(organization_id=9999, name='Orphan', variety='Dabinett', volume=5,
                             start_date=date(2026, 9, 30), created_by=user_id))
        with pytest.raises(Conflict):
            commit_or_raise('batch create in organization %s', 9999)
        # the session is usable again after the rollback
        assert Batch.query.count() == 0
