from grnds_bot.services.marvel_api import MarvelRivalsAPI
from grnds_bot.services.stats_api import StatsAPIClient
from grnds_bot.services.valorant_api import ValorantAPI, parse_history, parse_mmr


def test_parse_mmr_v3():
    data = {"current": {"tier": {"id": 15, "name": "Gold 2"}, "elo": 1450, "games_needed_for_rating": 0}}
    mmr = parse_mmr(data)
    assert (mmr.tier_id, mmr.tier_name, mmr.elo) == (15, "Gold 2", 1450)
    assert not mmr.is_unrated


def test_parse_mmr_unrated():
    mmr = parse_mmr({"current": {"tier": None, "games_needed_for_rating": 4}})
    assert mmr.is_unrated
    assert mmr.in_placements
    assert parse_mmr(None) is None


def test_parse_history_shapes():
    entries = [{"tier": {"id": 12, "name": "Silver 3"}, "elo": 900}, "lixo"]
    assert [e.tier_name for e in parse_history({"history": entries})] == ["Silver 3"]
    assert len(parse_history(entries)) == 1
    assert parse_history(None) == []


def test_retry_after_parsing():
    assert StatsAPIClient._retry_after("3") == 3.0
    assert StatsAPIClient._retry_after(None) == 2.0
    assert StatsAPIClient._retry_after("-1") == 0.0


def test_auth_headers():
    assert ValorantAPI(api_key="HDEV-x")._headers()["Authorization"] == "HDEV-x"
    assert MarvelRivalsAPI(api_key="k")._headers()["x-api-key"] == "k"


async def test_valorant_account_requires_puuid():
    api = ValorantAPI(api_key="k")
    calls = []

    async def fake_request(url, retry_on_429=True):
        calls.append(url)
        if "Sem" in url:
            return {"data": {"name": "Sem"}}
        return {"data": {"puuid": "abc", "name": "Nome Espaco", "tag": "BR1", "region": "br"}}

    api._request = fake_request
    account = await api.get_account("Nome Espaco", "BR1")
    assert account["puuid"] == "abc"
    assert calls[0].endswith("/v2/account/Nome%20Espaco/BR1")
    assert await api.get_account("Sem", "1") is None


async def test_valorant_mmr_and_history_failures():
    api = ValorantAPI(api_key="k")

    async def fake_request(url, retry_on_429=True):
        return None

    api._request = fake_request
    assert await api.get_mmr("na", "abc") is None
    assert await api.get_mmr_history("na", "abc") == []


async def test_marvel_stats_falls_back_to_v1():
    api = MarvelRivalsAPI(api_key="k")
    calls = []

    async def fake_request(url, retry_on_429=True):
        calls.append(url)
        if "/v2/" in url:
            return {"data": None}
        return {"data": {"rank": "Gold 2"}}

    api._request = fake_request
    assert await api.get_player_stats("123") == {"rank": "Gold 2"}
    assert "/v2/player/123" in calls[0]
    assert "/v1/player/123" in calls[1]


async def test_marvel_find_player():
    api = MarvelRivalsAPI(api_key="k")

    async def fake_request(url, retry_on_429=True):
        return {"uid": 999, "name": "Tester"}

    api._request = fake_request
    assert await api.find_player("tester") == {"uid": "999", "username": "Tester"}
