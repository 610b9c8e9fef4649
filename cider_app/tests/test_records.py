from datetime import date

import pytest

from conftest import create_batch, create_org, create_user, login, logout


@pytest.fixture
def batch(client, app):
    create_user(app, 'maker@example.com')
    login(client, 'maker@example.com')
    org_id = create_org(client)
    batch_id = create_batch(client, org_id)
    return org_id, batch_id, f'/api/v1/orgs/{org_id}/batches/{batch_id}'


def test_fermentation_log_crud(client, batch):
    _, _, base = batch
    rv = client.post(base + '/fermentation-logs', json={
        'recorded_at': '2026-10-01', 'temperature': 16.25, 'specific_gravity': 1.052, 'ph': 3.6, 'notes': 'Vigorous'
    })
    assert rv.status_code == 201
    log = rv.get_json()
    assert log['specific_gravity'] == 1.052
    assert log['ph'] == 3.6

    rv = client.post(base + '/fermentation-logs', json={})
    assert rv.status_code == 201
    assert rv.get_json()['recorded_at'] == date.today().isoformat()

    rv = client.put(base + f"/fermentation-logs/{log['id']}", json={
        'recorded_at': '2026-10-01', 'temperature': 15, 'specific_gravity': 1.040
    })
    assert rv.status_code == 200
    updated = rv.get_json()
    assert updated['temperature'] == 15.0
    # omitted optional fields are cleared by a full replacement
    assert updated['ph'] is None
    assert updated['notes'] is None

    assert client.delete(base + f"/fermentation-logs/{log['id']}").status_code == 200
    assert client.delete(base + f"/fermentation-logs/{log['id']}").status_code == 404
    assert len(client.get(base + '/fermentation-logs').get_json()) == 1


@pytest.mark.parametrize('payload', [
    {'ph': 15},
    {'ph': -1},
    {'ph': 14.005},
    {'temperature': 999.996},
    {'temperature': 'NaN'},
    {'specific_gravity': 'inf'},
    {'recorded_at': 'yesterday'},
])
def test_fermentation_log_validation(client, batch, payload):
    _, _, base = batch
    rv = client.post(base + '/fermentation-logs', json=payload)
    assert rv.status_code == 400
    assert set(payload) <= set(rv.get_json()['details'])


def test_logs_ordered_and_filtered(client, batch):
    _, _, base = batch
    for day in ('2026-09-20', '2026-10-05', '2026-09-28'):
        client.post(base + '/fermentation-logs', json={'recorded_at': day})

    days = [x['recorded_at'] for x in client.get(base + '/fermentation-logs').get_json()]
    assert days == ['2026-10-05', '2026-09-28', '2026-09-20']

    rv = client.get(base + '/fermentation-logs', query_string={'since': '2026-09-25'})
    assert [x['recorded_at'] for x in rv.get_json()] == ['2026-10-05', '2026-09-28']
    rv = client.get(base + '/fermentation-logs', query_string={'since': '2026-09-21', 'until': '2026-10-01'})
    assert [x['recorded_at'] for x in rv.get_json()] == ['2026-09-28']
    rv = client.get(base + '/fermentation-logs', query_string={'until': '2026-09-28T23:00:00Z'})
    assert [x['recorded_at'] for x in rv.get_json()] == ['2026-09-28', '2026-09-20']

    assert client.get(base + '/fermentation-logs', query_string={'since': 'last week'}).status_code == 400


def test_tasting_notes(client, batch):
    _, _, base = batch
    rv = client.post(base + '/tasting-notes', json={
        'recorded_at': '2026-10-10', 'sweetness': 2, 'acidity': 4, 'body': 3,
        'aroma': 'Baked apple', 'flavor': 'Tannic', 'finish': 'Long',
    })
    assert rv.status_code == 201
    note = rv.get_json()
    assert (note['sweetness'], note['acidity'], note['body']) == (2, 4, 3)

    for bad in ({'sweetness': 0}, {'acidity': 6}, {'body': 2.5}):
        assert client.post(base + '/tasting-notes', json=bad).status_code == 400

    rv = client.put(base + f"/tasting-notes/{note['id']}", json={'sweetness': 5, 'notes': 'Sweeter with age'})
    assert rv.status_code == 200
    assert rv.get_json()['sweetness'] == 5
    # recorded_at is kept when omitted
    assert rv.get_json()['recorded_at'] == '2026-10-10'

    client.post(base + '/tasting-notes', json={'recorded_at': '2026-10-12'})
    assert [n['recorded_at'] for n in client.get(base + '/tasting-notes').get_json()] == ['2026-10-12', '2026-10-10']

    assert client.delete(base + f"/tasting-notes/{note['id']}").status_code == 200
    assert len(client.get(base + '/tasting-notes').get_json()) == 1


def test_packaging_schedule_validation(client, batch):
    _, _, base = batch
    assert client.post(base + '/packaging-schedules', json={'format': 'bottle'}).status_code == 400
    assert client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-01', 'format': 'barrel'
    }).status_code == 400
    assert client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-01', 'format': 'keg', 'quantity': -1
    }).status_code == 400
    assert client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-01', 'format': 'keg', 'quantity': 10**20
    }).status_code == 400
    assert client.post(base + '/packaging-schedules', json=['keg']).status_code == 400
    rv = client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-01', 'format': 'bag-in-box', 'quantity': 0
    })
    assert rv.status_code == 201
    assert rv.get_json()['quantity'] == 0
    rv = client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-02', 'format': 'can', 'quantity': 2147483647
    })
    assert rv.status_code == 201
    assert len(client.get(base + '/packaging-schedules').get_json()) == 2


def test_upcoming_and_complete(client, batch):
    org_id, _, base = batch
    later = client.post(base + '/packaging-schedules', json={
        'target_date': '2026-12-15', 'format': 'keg', 'quantity': 4
    }).get_json()
    sooner = client.post(base + '/packaging-schedules', json={
        'target_date': '2026-11-20', 'format': 'bottle', 'quantity': 240
    }).get_json()
    assert sooner['pending'] is True
    assert sooner['completed_at'] is None

    upcoming = client.get(f'/api/v1/orgs/{org_id}/packaging/upcoming').get_json()
    assert [s['id'] for s in upcoming] == [sooner['id'], later['id']]
    assert upcoming[0]['batch_name'] == 'Dabinett 2026'

    rv = client.post(base + f"/packaging-schedules/{sooner['id']}/complete")
    assert rv.status_code == 200
    done = rv.get_json()
    assert done['pending'] is False
    assert done['completed_at'] is not None

    upcoming = client.get(f'/api/v1/orgs/{org_id}/packaging/upcoming').get_json()
    assert [s['id'] for s in upcoming] == [later['id']]

    # completing again keeps the original timestamp
    again = client.post(base + f"/packaging-schedules/{sooner['id']}/complete").get_json()
    assert again['completed_at'] == done['completed_at']

    listed = client.get(base + '/packaging-schedules').get_json()
    assert [s['id'] for s in listed] == [sooner['id'], later['id']]
    assert listed[0]['completed_at'] == done['completed_at']


def test_records_scoped_to_batch_and_org(client, app, batch):
    org_id, batch_id, base = batch
    other_batch = create_batch(client, org_id, name='Other')
    log = client.post(base + '/fermentation-logs', json={'temperature': 18}).get_json()

    other_base = f'/api/v1/orgs/{org_id}/batches/{other_batch}'
    assert client.put(other_base + f"/fermentation-logs/{log['id']}", json={'temperature': 1}).status_code == 404
    assert client.delete(other_base + f"/fermentation-logs/{log['id']}").status_code == 404
    assert client.get(f'/api/v1/orgs/{org_id}/batches/9999/tasting-notes').status_code == 404

    logout(client)
    create_user(app, 'rival@example.com')
    login(client, 'rival@example.com')
    rival_org = create_org(client, name='Rival')
    # a batch id from another organization behaves like a missing one
    assert client.get(f'/api/v1/orgs/{rival_org}/batches/{batch_id}/fermentation-logs').status_code == 404
    assert client.get(base + '/fermentation-logs').status_code == 404
    assert client.get(f'/api/v1/orgs/{org_id}/packaging/upcoming').status_code == 404


def test_deleting_batch_removes_records(client, batch):
    org_id, _, base = batch
    client.post(base + '/fermentation-logs', json={'temperature': 18})
    client.post(base + '/packaging-schedules', json={'target_date': '2026-11-01', 'format': 'can'})
    assert client.delete(base).status_code == 200
    assert client.get(base + '/fermentation-logs').status_code == 404
    assert client.get(f'/api/v1/orgs/{org_id}/packaging/upcoming').get_json() == []
