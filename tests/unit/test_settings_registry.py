import pytest
from pydantic import ValidationError

from config import (
    FEEDBACK_KEY,
    QUESTION_KEY,
    SUMMARY_KEY,
    TRANSLATOR_KEY,
    AppConfig,
    InterviewDeployment,
    Settings,
    bind_model,
    get_model,
    has_model,
    load_config,
    preset_path,
    resolve_route,
    unbind_model,
)
from interview_session import build_controller, build_controller_from_path


def test_settings_defaults_and_env(monkeypatch):
    monkeypatch.setenv("ANSWER_MAX_CHARS", "120")
    monkeypatch.setenv("SOURCE_LOCALE", "en")
    cfg = Settings()
    assert cfg.ANSWER_MAX_CHARS == 120
    assert cfg.SOURCE_LOCALE == "en"
    assert "mn" in cfg.SUPPORTED_LOCALES


def test_registry_bind_get_unbind():
    sentinel = object()
    assert not has_model(QUESTION_KEY)
    with pytest.raises(KeyError):
        get_model(QUESTION_KEY)
    bind_model(QUESTION_KEY, sentinel)
    assert get_model(QUESTION_KEY) is sentinel
    unbind_model(QUESTION_KEY)
    assert not has_model(QUESTION_KEY)


@pytest.mark.parametrize("name, dimensions, max_turns", [("grit", 12, 12), ("coach", 5, 4)])
def test_presets_load(name, dimensions, max_turns):
    cfg = load_config(preset_path(name))
    assert cfg.interview.name == name
    assert len(cfg.interview.dimensions) == dimensions
    assert cfg.interview.max_turns == max_turns
    assert resolve_route(cfg, FEEDBACK_KEY).response_format == "json_object"


def test_grit_weights_cover_five_dimensions():
    cfg = load_config(preset_path("grit"))
    assert cfg.interview.weights == {2: 0.30, 5: 0.25, 8: 0.20, 12: 0.15, 4: 0.10}
    assert cfg.interview.has_scores
    assert cfg.interview.feedback_mode == "strict"


def test_resolve_route_errors():
    cfg = load_config(preset_path("coach"))
    with pytest.raises(KeyError, match="Registry entry missing"):
        resolve_route(cfg, "collaborators.unknown")
    broken = cfg.model_copy(update={"registry": {QUESTION_KEY: "missing-route"}})
    with pytest.raises(KeyError, match="Route 'missing-route' missing"):
        resolve_route(broken, QUESTION_KEY)


def _deployment_data(**overrides):
    data = {
        "opening_question": "Hello?",
        "closing_message": "Bye.",
        "max_turns": 2,
        "dimensions": [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}],
        "feedback": {"required": [{"key": "score", "kind": "number", "ge": 0, "le": 5}]},
        "score_key": "score",
        "feedback_mode": "strict",
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    "overrides",
    [
        {"dimensions": [{"id": 1, "name": "a"}, {"id": 1, "name": "b"}]},
        {"weights": {3: 0.5}},
        {"weights": {1: -0.5}},
        {"score_key": "missing"},
        {"feedback": {"required": [{"key": "score", "kind": "text"}]}},
        {"feedback": {"required": [{"key": "score", "kind": "number", "ge": 0, "le": 5, "fallback": 9}]}},
        {"feedback": {"required": []}},
        {"max_turns": 0},
        {"feedback_mode": "lenient"},
    ],
)
def test_deployment_validation(overrides):
    with pytest.raises(ValidationError):
        InterviewDeployment.model_validate(_deployment_data(**overrides))


def test_build_controller_prefers_registry_bindings(question_gen, feedback_gen):
    cfg = load_config(preset_path("coach"))
    bind_model(QUESTION_KEY, question_gen)
    bind_model(FEEDBACK_KEY, feedback_gen)
    controller = build_controller(cfg)
    controller.start()
    state = controller.submit_answer("私はエンジニアです。")
    assert feedback_gen.calls[0]["answer"] == "私はエンジニアです。"
    assert state.turns[-1].dimension_id == 1
    assert state.feedback[0].evaluation is None


def test_build_controller_without_optional_routes(question_gen, feedback_gen):
    cfg = load_config(preset_path("coach"))
    cfg = cfg.model_copy(
        update={"registry": {key: value for key, value in cfg.registry.items() if key not in (SUMMARY_KEY, TRANSLATOR_KEY)}}
    )
    bind_model(QUESTION_KEY, question_gen)
    bind_model(FEEDBACK_KEY, feedback_gen)
    controller = build_controller(cfg)
    controller.start()
    assert controller.translated_view("en") == {"items": []}


def test_build_controller_from_path_wires_llm_agents():
    class Client:
        def __init__(self):
            self.count = 0

        def post(self, url, *, json, headers, timeout):
            self.count += 1
            content = '{"question": "最近の成果を教えてください。"}' if self.count % 2 == 0 else "plain feedback"
            return _Response(content)

    client = Client()
    controller = build_controller_from_path(preset_path("coach"), client=client)
    controller.start()
    state = controller.submit_answer("よろしくお願いします。")
    assert state.turns[-1].text == "最近の成果を教えてください。"
    assert state.feedback[0].payload["intent"] == "この質問の意図の解析に失敗しました。"
    assert client.count == 2


class _Response:
    status_code = 200
    text = ""

    def __init__(self, content):
        self._content = content

    def json(self):
        return {"choices": [{"message": {"content": self._content}}]}


def test_load_config_from_custom_file(tmp_path):
    path = tmp_path / "deployment.json"
    cfg = AppConfig(interview=InterviewDeployment.model_validate(_deployment_data(name="custom")))
    path.write_text(cfg.model_dump_json(), encoding="utf-8")
    loaded = load_config(path)
    assert loaded.interview.name == "custom"
    assert loaded.interview.question.plain_text_key == "question"


def test_scored_deployment_rejects_lenient_feedback(make_deployment):
    with pytest.raises(ValidationError, match="feedback_mode 'strict'"):
        make_deployment(feedback_mode="lenient")
    unscored = make_deployment(feedback_mode="lenient", score_key=None, comment_key=None)
    assert not unscored.has_scores


def test_default_config_path_points_at_bundled_preset(monkeypatch, tmp_path, question_gen, feedback_gen):
    monkeypatch.delenv("INTERVIEW_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    cfg = Settings()
    assert cfg.INTERVIEW_CONFIG_PATH == str(preset_path("coach"))
    monkeypatch.setattr("interview_session.interview_session.settings", cfg)
    bind_model(QUESTION_KEY, question_gen)
    bind_model(FEEDBACK_KEY, feedback_gen)
    controller = build_controller_from_path()
    assert controller.deployment.name == "coach"


@pytest.mark.parametrize("name", ["grit", "coach"])
def test_preset_closing_message_counts_every_question(name):
    interview = load_config(preset_path(name)).interview
    # Opening question plus one follow-up per turn.
    assert f"全{interview.max_turns + 1}問" in interview.closing_message
