from uuid import UUID

import pytest

from wildnet.domain.social import ranking


def test_score_combines_weighted_signals():
	assert ranking.recommendation_score(1, 0, False, None) == 3.0
	assert ranking.recommendation_score(2, 1, True, None) == 9.0
	assert ranking.recommendation_score(1, 0, False, 0.0) == 4.0
	assert ranking.recommendation_score(1, 0, False, 30.0) == 3.5


@pytest.mark.parametrize("signal", ["mutual", "species", "location"])
def test_score_grows_with_each_signal(signal):
	base = dict(mutual_count=1, shared_species_count=1, location_match=False, distance_km=120.0)
	bumped = dict(base)
	if signal == "mutual":
		bumped["mutual_count"] += 1
	elif signal == "species":
		bumped["shared_species_count"] += 1
	else:
		bumped["location_match"] = True
	assert ranking.recommendation_score(**bumped) > ranking.recommendation_score(**base)


def test_closer_candidates_score_higher():
	near = ranking.recommendation_score(1, 0, False, 2.5)
	far = ranking.recommendation_score(1, 0, False, 400.0)
	unknown = ranking.recommendation_score(1, 0, False, None)
	assert near > far > unknown


def test_proximity_bonus_bounds():
	assert ranking.proximity_bonus(None) == 0.0
	assert ranking.proximity_bonus(0.0) == ranking.PROXIMITY_WEIGHT
	assert ranking.proximity_bonus(-5.0) == ranking.PROXIMITY_WEIGHT
	assert 0.0 < ranking.proximity_bonus(20000.0) < 0.01


def test_sort_key_orders_ties_by_counts_then_handle_then_id():
	first = UUID(int=1)
	second = UUID(int=2)
	keys = [
		ranking.sort_key(6.0, 1, 1, "amy", first),
		ranking.sort_key(6.0, 2, 0, "zoe", first),
		ranking.sort_key(6.0, 1, 1, None, second),
		ranking.sort_key(7.0, 1, 0, "zed", first),
		ranking.sort_key(6.0, 1, 1, "amy", second),
	]
	assert sorted(range(len(keys)), key=lambda idx: keys[idx]) == [3, 1, 2, 0, 4]
