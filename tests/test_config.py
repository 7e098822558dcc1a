import pytest
from pydantic import ValidationError

from beacon.config import DEFAULTS, EngineConfig, load_config, resolve_project_key
from beacon.dom import Element, describe, is_cta, is_disabled, is_interactive
from beacon.workers.replay import ReplayHost


def test_defaults():
    cfg = load_config()
    assert cfg.idle_threshold_ms == 3000
    assert cfg.rage_click_radius_px == 24
    assert cfg.reread_window_ms == 15000
    assert cfg.cta_proximity_px == 120
    assert cfg.endpoint == DEFAULTS["endpoint"]
    assert cfg.project_key is None


def test_env_then_overrides(monkeypatch):
    monkeypatch.setenv("BEACON_ENDPOINT", "http://env.test/collect")
    monkeypatch.setenv("BEACON_PROJECT_KEY", "pk_env")
    cfg = load_config()
    assert cfg.endpoint == "http://env.test/collect"
    assert cfg.project_key == "pk_env"
    assert load_config(project_key="pk_arg", idle_threshold_ms=None).project_key == "pk_arg"


def test_non_positive_thresholds_rejected():
    with pytest.raises(ValidationError):
        EngineConfig(rage_click_window_ms=0)
    with pytest.raises(ValidationError):
        load_config(hover_threshold_ms=-5)


def test_project_key_resolution_order():
    host = ReplayHost()
    assert resolve_project_key(load_config(), host) is None
    host.globals["invisinsightsProjectKey"] = "pk_global"
    assert resolve_project_key(load_config(), host) == "pk_global"
    host.script_attributes["data-project-key"] = "pk_script"
    assert resolve_project_key(load_config(), host) == "pk_script"
    assert resolve_project_key(load_config(project_key="pk_cfg"), host) == "pk_cfg"


def test_blank_project_key_is_absent():
    host = ReplayHost()
    host.script_attributes["data-project-key"] = "   "
    assert resolve_project_key(load_config(), host) is None


@pytest.mark.parametrize("el,cta", [
    (Element("button"), True),
    (Element("a", attrs={"href": "/buy"}), True),
    (Element("a"), False),
    (Element("input", attrs={"type": "submit"}), True),
    (Element("input", attrs={"type": "text"}), False),
    (Element("div", attrs={"data-cta": ""}), True),
    (Element("div"), False),
    (None, False),
])
def test_is_cta(el, cta):
    assert is_cta(el) is cta


def test_from_selector():
    el = Element.from_selector("button#submit.primary.wide[disabled]")
    assert el.tag == "button"
    assert el.get("id") == "submit"
    assert el.get("class") == "primary wide"
    assert is_disabled(el)

    link = Element.from_selector("a#next[href=/next]")
    assert link.get("href") == "/next"
    assert is_cta(link)

    assert Element.from_selector("#orphan").tag == "div"
    assert Element.from_selector("").tag == "div"


def test_describe_is_coarse():
    el = Element("div", attrs={"role": "button", "data-secret": "x"})
    assert describe(el) == {"tag": "div", "role": "button", "type": None, "disabled": False, "interactive": True}
    assert describe(None) is None


def test_inert_ancestor_disables():
    dialog = Element("div", attrs={"inert": ""})
    assert is_disabled(Element("button", parent=dialog))
    assert is_interactive(Element("button", parent=dialog))
