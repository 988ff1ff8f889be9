from grnds_bot.services.skill_gap import analyze_skill_gap


def _p(name, mmr):
    return {'name': name, 'rank': "?", 'mmr': mmr}


def test_no_warning_for_small_queues():
    assert not analyze_skill_gap([], threshold=100).has_warning
    assert not analyze_skill_gap([_p("a", 3000)], threshold=100).has_warning


def test_warns_when_gap_reaches_threshold():
    result = analyze_skill_gap([_p("a", 300), _p("b", 1800), _p("c", 900)], threshold=1500)
    assert result.has_warning
    assert result.gap == 1500
    assert result.highest['name'] == "b"
    assert result.lowest['name'] == "a"
    assert "1500 MMR" in result.message


def test_gap_below_threshold():
    result = analyze_skill_gap([_p("a", 1000), _p("b", 1200)], threshold=1500)
    assert not result.has_warning
    assert result.gap == 200
    assert result.message == ""
