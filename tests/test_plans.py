from surfaced.utils.plans import PLAN_LIMITS, UNLIMITED, get_plan_limits, has_feature


def test_unknown_plan_falls_back_to_free():
    assert get_plan_limits("ENTERPRISE") == PLAN_LIMITS["FREE"]
    assert get_plan_limits(None) == PLAN_LIMITS["FREE"]
    assert get_plan_limits("plus") == PLAN_LIMITS["PLUS"]


def test_limits_grow_with_plan():
    order = ["FREE", "BASIC", "PLUS", "PREMIUM"]
    checks = [PLAN_LIMITS[p].visibility_checks_per_month for p in order]
    assert checks == sorted(checks)
    assert PLAN_LIMITS["PREMIUM"].products_audited == UNLIMITED


def test_feature_flags():
    assert not has_feature("BASIC", "export_csv")
    assert has_feature("PLUS", "export_csv")
    assert has_feature("PREMIUM", "api_access")
    assert not has_feature("PREMIUM", "no_such_feature")


def test_to_dict_is_json_safe():
    limits = PLAN_LIMITS["PREMIUM"].to_dict()

    assert limits["products_audited"] is None
    assert limits["competitors_tracked"] == 10
