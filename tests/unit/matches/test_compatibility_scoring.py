from wme.config_types import ScoringConfig
from wme.matches.scoring import CompatibilityScorer, age_in_preference


def test_perfect_pair_scores_exactly_100(sample_profile):
    bride_guest = sample_profile(1)
    groom_guest = sample_profile(2, gender='M', age=30, preferred_age_min=24, preferred_age_max=32,
                                 area=' jerusalem ', religious_level='TRADITIONAL')
    scorer = CompatibilityScorer()
    breakdown = scorer.evaluate(bride_guest, groom_guest)
    assert breakdown.score == 100.0
    assert breakdown.opposite_gender and breakdown.same_area and breakdown.same_religious_level
    assert breakdown.age_fits_first and breakdown.age_fits_second
    assert len(breakdown.notes) == 5


def test_score_is_symmetric(sample_profile):
    a = sample_profile(1)
    b = sample_profile(2, gender='m', age=40, area='Haifa')
    scorer = CompatibilityScorer()
    assert scorer.score(a, b) == scorer.score(b, a)


def test_same_gender_gets_no_gender_points(sample_profile):
    a, b = sample_profile(1), sample_profile(2, age=30)
    assert CompatibilityScorer().score(a, b) == 70.0


def test_undeclared_gender_gets_no_gender_points(sample_profile):
    a, b = sample_profile(1, gender=None), sample_profile(2, gender='m', age=30)
    assert CompatibilityScorer().evaluate(a, b).opposite_gender is False


def test_missing_range_is_unrestricted(sample_profile):
    chooser = sample_profile(1, preferred_age_min=None, preferred_age_max=None)
    assert age_in_preference(chooser, sample_profile(2, age=70))
    only_min = sample_profile(1, preferred_age_min=30, preferred_age_max=None)
    assert not age_in_preference(only_min, sample_profile(2, age=29))
    assert age_in_preference(only_min, sample_profile(2, age=60))


def test_missing_age_contributes_nothing(sample_profile):
    chooser = sample_profile(1, preferred_age_min=None, preferred_age_max=None)
    assert not age_in_preference(chooser, sample_profile(2, age=None))


def test_blank_area_never_matches(sample_profile):
    a, b = sample_profile(1, area='  '), sample_profile(2, area='')
    assert CompatibilityScorer().evaluate(a, b).same_area is False


def test_custom_weights(sample_profile):
    cfg = ScoringConfig(weight_opposite_gender=10.0, weight_age_per_direction=5.0,
                        weight_same_area=1.0, weight_same_religious_level=1.0)
    assert cfg.max_score == 22.0
    a = sample_profile(1)
    b = sample_profile(2, gender='m', age=30)
    assert CompatibilityScorer(cfg).score(a, b) == 22.0
