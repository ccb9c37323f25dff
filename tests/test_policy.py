import pytest

from dispatch.policy import DispatchPolicy, default_dispatch_policy, policy_from_env


def test_defaults():
    policy = default_dispatch_policy()

    assert policy.radius_meters == 5000.0
    assert policy.candidate_limit == 20
    assert policy.poll_limit == 30
    assert policy.history_limit == 200
    assert policy.poll_interval_seconds == 5.0
    assert policy.store_engine == "memory"


def test_env_overrides_and_blank_values():
    policy = policy_from_env({
        "DISPATCH_RADIUS_METERS": "2000",
        "DISPATCH_POLL_LIMIT": " 10 ",
        "DISPATCH_STORE_ENGINE": "mongo",
        "DISPATCH_CANDIDATE_LIMIT": "",
    })

    assert policy.radius_meters == 2000.0
    assert isinstance(policy.radius_meters, float)
    assert policy.poll_limit == 10
    assert policy.store_engine == "mongo"
    # blank falls back to the default
    assert policy.candidate_limit == 20


def test_empty_environment_gives_defaults():
    assert policy_from_env({}) == DispatchPolicy()


@pytest.mark.parametrize(
    "environ",
    [
        {"DISPATCH_RADIUS_METERS": "0"},
        {"DISPATCH_RADIUS_METERS": "far"},
        {"DISPATCH_POLL_LIMIT": "2.5"},
        {"DISPATCH_HISTORY_LIMIT": "-1"},
        {"DISPATCH_POLL_INTERVAL_SECONDS": "0"},
        {"DISPATCH_STORE_ENGINE": "redis"},
        {"STORE_LOCK_TIMEOUT_SECONDS": "-3"},
    ],
)
def test_invalid_settings_are_refused(environ):
    with pytest.raises(ValueError):
        policy_from_env(environ)


def test_policy_is_immutable():
    policy = DispatchPolicy()
    with pytest.raises(AttributeError):
        policy.radius_meters = 1
