from datetime import datetime, timedelta, timezone

from certhub.models import Certificate


def _yesterday():
    return (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()


def test_verify_fresh_certificate(client, issue):
    issued = issue(expiryDate="2099-12-31")
    resp = client.get(f"/api/verify/{issued['certificateId']}")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["valid"] is True
    assert body["message"] == "Certificate is valid"
    assert body["certificate"] == {
        "certificateId": issued["certificateId"],
        "recipientName": "Jane Doe",
        "courseName": "Intro to Databases",
        "issueDate": issued["issueDate"],
        "expiryDate": "2099-12-31T00:00:00Z",
        "issuer": "Acme Academy",
        "grade": "A",
        "status": "active",
    }


def test_verify_unknown_certificate(client):
    resp = client.get("/api/verify/CERT-DEADBEEF")
    assert resp.status_code == 404
    assert resp.get_json() == {"valid": False, "message": "Certificate not found"}


def test_verify_revoked_certificate_is_redacted(client, auth_headers, issue):
    cid = issue()["certificateId"]
    client.put(f"/api/certificates/{cid}/revoke", headers=auth_headers)
    client.put(f"/api/certificates/{cid}/revoke", headers=auth_headers)

    body = client.get(f"/api/verify/{cid}").get_json()
    assert body["valid"] is False
    assert "revoked" in body["message"]
    assert set(body["certificate"]) == {"recipientName", "courseName", "issueDate", "issuer", "status"}
    assert body["certificate"]["status"] == "revoked"


def test_verify_expires_lazily_and_persists(app, client, auth_headers, issue):
    cid = issue(expiryDate=_yesterday())["certificateId"]
    with app.app_context():
        assert Certificate.query.filter_by(certificate_id=cid).one().status == "active"

    first = client.get(f"/api/verify/{cid}").get_json()
    assert first["valid"] is True
    assert first["certificate"]["status"] == "expired"

    with app.app_context():
        assert Certificate.query.filter_by(certificate_id=cid).one().status == "expired"

    second = client.get(f"/api/verify/{cid}").get_json()
    assert second["certificate"]["status"] == "expired"

    listed = client.get("/api/certificates", headers=auth_headers).get_json()
    assert [c["status"] for c in listed if c["certificateId"] == cid] == ["expired"]


def test_future_expiry_stays_active(client, issue):
    cid = issue(expiryDate=(datetime.now(timezone.utc) + timedelta(days=1)).isoformat())["certificateId"]
    assert client.get(f"/api/verify/{cid}").get_json()["certificate"]["status"] == "active"


def test_revoking_expired_certificate_invalidates_it(client, auth_headers, issue):
    cid = issue(expiryDate=_yesterday())["certificateId"]
    client.get(f"/api/verify/{cid}")
    assert client.put(f"/api/certificates/{cid}/revoke", headers=auth_headers).status_code == 200
    body = client.get(f"/api/verify/{cid}").get_json()
    assert body["valid"] is False
    assert body["certificate"]["status"] == "revoked"
