"""End-to-end scenarios over HTTP with real OpenPGP keys."""
from sqlalchemy import select

from whereabouts.db.models import Attestation

from conftest import keyid, login, register, sign_cleartext


async def test_foreign_signature_never_verifies(client, isolated_database, alice_key, mallory_key):
    """A challenge signed by a different key leaves the attestation pending."""
    await register(client, alice_key)
    challenge = (
        await client.post("/challenges", json={"fingerprint": keyid(alice_key)})
    ).json()["challenge"]

    response = await client.post(
        "/attestations",
        json={"signedChallengeMessage": sign_cleartext(mallory_key, challenge)},
    )
    assert response.status_code == 401

    with isolated_database.get_db_session() as db:
        attestations = db.execute(select(Attestation)).scalars().all()
        assert len(attestations) == 1
        assert attestations[0].verified is False
        assert attestations[0].fulfilled is False
        assert attestations[0].auth_token is None


async def test_team_locations_hidden_from_stranger(client, alice_key, bob_key, mallory_key):
    """Creator X and member Y share "Team"; stranger Z sees none of Y's updates."""
    x_fp = await register(client, alice_key)
    y_fp = await register(client, bob_key)
    await register(client, mallory_key)
    x = await login(client, alice_key)
    y = await login(client, bob_key)
    z = await login(client, mallory_key)

    team = (
        await client.post("/groups", json={"name": "Team", "memberFingerprints": [y_fp]}, headers=x)
    ).json()
    assert {m["fingerprint"] for m in team["members"]} == {x_fp, y_fp}

    response = await client.post(
        "/locations",
        json={"ciphertext": "y-was-here", "groupIds": [team["id"]]},
        headers=y,
    )
    assert response.status_code == 201

    stranger = await client.get("/locations", params={"groupId": team["id"]}, headers=z)
    assert stranger.status_code == 200
    assert stranger.json() == []
    assert (await client.get("/locations", headers=z)).json() == []

    creator = await client.get("/locations", params={"groupId": team["id"]}, headers=x)
    assert [r["ciphertext"] for r in creator.json()] == ["y-was-here"]
