import json

import pytest
from pydantic import ValidationError

from subslayer import knowledge
from subslayer.knowledge import (
    DEFAULT_SERVICES,
    KnowledgeBase,
    default_knowledge_base,
    get_all_services,
    lookup_service,
)
from subslayer.models import ServiceKnowledge


@pytest.fixture
def kb():
    return KnowledgeBase.from_records(DEFAULT_SERVICES)


@pytest.fixture
def fresh_default(monkeypatch):
    default_knowledge_base.cache_clear()
    yield monkeypatch
    default_knowledge_base.cache_clear()


@pytest.mark.parametrize(
    "desc, service_id",
    [
        ("NETFLIX.COM 866-579-7172", "netflix"),
        ("Spotify AB Stockholm", "spotify"),
        ("Google *YouTube Premium", "youtube_premium"),
        ("DISNEY PLUS", "disney_plus"),
        ("APPLE.COM/BILL", "apple_services"),
        ("Bill Payment Indihome", "indihome"),
        ("kartu HALO", "telkomsel"),
    ],
)
def test_lookup_matches_known_services(kb, desc, service_id):
    assert kb.lookup(desc).id == service_id


@pytest.mark.parametrize("desc", ["", "coffee shop", "***", "1234"])
def test_lookup_misses(kb, desc):
    assert kb.lookup(desc) is None


def test_first_declared_keyword_wins():
    kb = KnowledgeBase.from_records(
        [
            {"id": "short", "name": "Short", "category": "Other", "keywords": ["max"]},
            {"id": "long", "name": "Long", "category": "Other", "keywords": ["hbo max"]},
        ]
    )
    assert kb.lookup("HBO MAX").id == "short"


def test_records_keep_declaration_order(kb):
    assert [s.id for s in kb] == [r["id"] for r in DEFAULT_SERVICES]
    assert len(kb) == len(DEFAULT_SERVICES)


def test_get_by_id(kb):
    assert kb.get("netflix").name == "Netflix"
    assert kb.get("does-not-exist") is None


def test_records_parse_camel_case_and_are_frozen(kb):
    netflix = kb.get("netflix")
    assert netflix.cancellation_url == "https://www.netflix.com/cancelplan"
    assert netflix.downgrade_options[0].name == "Standard with Ads"
    with pytest.raises(ValidationError):
        netflix.name = "Other"


@pytest.mark.parametrize("keywords", [[], ["  "]])
def test_service_requires_a_keyword(keywords):
    with pytest.raises(ValidationError):
        ServiceKnowledge(id="x", name="X", category="Other", keywords=keywords)


def test_keywords_are_lowercased():
    svc = ServiceKnowledge(id="x", name="X", category="Other", keywords=[" FooBar "])
    assert svc.keywords == ["foobar"]


def test_from_json_file(tmp_path):
    path = tmp_path / "services.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "gym",
                    "name": "Gym",
                    "category": "Lifestyle",
                    "cancellationMethod": "Letter",
                    "keywords": ["fitness first"],
                }
            ]
        ),
        encoding="utf-8",
    )
    kb = KnowledgeBase.from_json_file(str(path))
    assert len(kb) == 1
    assert kb.lookup("FITNESS FIRST SUDIRMAN").cancellation_method == "Letter"


def test_from_json_file_rejects_non_list(tmp_path):
    path = tmp_path / "services.json"
    path.write_text('{"id": "x"}', encoding="utf-8")
    with pytest.raises(ValueError):
        KnowledgeBase.from_json_file(str(path))


def test_env_file_replaces_default_table(fresh_default, tmp_path):
    path = tmp_path / "kb.json"
    path.write_text(
        json.dumps([{"id": "only", "name": "Only", "category": "Other", "keywords": ["only"]}]),
        encoding="utf-8",
    )
    fresh_default.setenv("KNOWLEDGE_BASE_FILE", str(path))
    kb = default_knowledge_base()
    assert [s.id for s in kb] == ["only"]
    assert lookup_service("netflix") is None
    assert [s.id for s in get_all_services()] == ["only"]


def test_bad_env_file_falls_back_to_builtin(fresh_default, tmp_path, caplog):
    path = tmp_path / "kb.json"
    path.write_text("not json", encoding="utf-8")
    fresh_default.setenv("KNOWLEDGE_BASE_FILE", str(path))
    with caplog.at_level("WARNING", logger=knowledge.logger.name):
        kb = default_knowledge_base()
    assert len(kb) == len(DEFAULT_SERVICES)
    assert "Ignoring knowledge base file" in caplog.text


def test_module_helpers_accept_explicit_base(kb):
    custom = KnowledgeBase.from_records(
        [{"id": "a", "name": "A", "category": "Other", "keywords": ["alpha"]}]
    )
    assert lookup_service("ALPHA ltd", custom).id == "a"
    assert lookup_service("ALPHA ltd", kb) is None
    assert len(get_all_services(custom)) == 1
