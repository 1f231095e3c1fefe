import pytest

from webflow_migrator.mappers import FIELD_TABLES, map_record
from webflow_migrator.mappers.field_tables import camel_case
from webflow_migrator.mappers.webflow_mapper import normalize_reference, normalize_references


def _post(**overrides):
    record = {
        "id": "64f0c2a1b2",
        "cmsLocaleId": "loc-1",
        "lastPublished": "2024-03-01T10:00:00.000Z",
        "lastUpdated": "2024-03-02T10:00:00.000Z",
        "createdOn": "2024-02-01T10:00:00.000Z",
        "isArchived": False,
        "isDraft": False,
        "fieldData": {
            "name": "Water Security in Arid Regions",
            "slug": "my-post",
            "date-published": "2024-03-01T00:00:00.000Z",
            "body": "<p>Hello</p>",
            "arabic-title": "الأمن المائي",
            "featured": True,
            "main-image": {"fileId": "f-main", "url": "https://cdn.prod.website-files.com/a/main.jpg", "alt": "Main"},
            "thumbnail": {"fileId": "f-thumb", "url": "https://cdn.prod.website-files.com/a/thumb.png", "alt": None},
            "image-carousel": [
                {"fileId": "g1", "url": "https://cdn.prod.website-files.com/a/g1.jpg", "alt": "One"},
                {"fileId": "g2", "url": "", "alt": None},
            ],
            "programme-2": "prog-1",
            "theme-3": ["tag-1", "tag-2"],
            "push-to-gr": True,
        },
    }
    record["fieldData"].update(overrides)
    return record


def test_post_core_fields():
    item = map_record(_post(), "post")
    assert item.type == "post"
    assert item.title == "Water Security in Arid Regions"
    assert item.slug == "my-post"
    assert item.status == "published"
    assert item.id is None
    data = item.data
    assert data["title"] == item.title
    assert data["slug"] == "my-post"
    assert data["status"] == "published"
    assert data["bodyEnglish"] == "<p>Hello</p>"
    assert data["description"] == "<p>Hello</p>"
    assert data["arabicTitle"] == "الأمن المائي"
    assert data["datePublished"] == "2024-03-01T00:00:00.000Z"
    assert data["featured"] is True
    assert data["pushToGR"] is True
    assert data["videoAsHero"] is False


def test_post_images_and_gallery():
    data = map_record(_post(), "post").data
    assert data["mainImage"] == {"url": "https://cdn.prod.website-files.com/a/main.jpg", "alt": "Main"}
    assert data["thumbnail"] == {"url": "https://cdn.prod.website-files.com/a/thumb.png", "alt": None}
    assert data["openGraphImage"] is None
    # entries without a URL are dropped
    assert data["imageCarousel"] == [{"url": "https://cdn.prod.website-files.com/a/g1.jpg", "alt": "One"}]


def test_post_relationships_normalized():
    data = map_record(_post(), "post").data
    assert data["programmeLabel"] == {"id": "prog-1", "slug": "prog-1"}
    assert data["tags"] == [{"id": "tag-1", "slug": "tag-1"}, {"id": "tag-2", "slug": "tag-2"}]
    assert data["blogCategory"] is None
    assert data["people"] == []


def test_webflow_meta():
    meta = map_record(_post(), "post").data["webflowMeta"]
    assert meta == {
        "webflowId": "64f0c2a1b2",
        "cmsLocaleId": "loc-1",
        "lastPublished": "2024-03-01T10:00:00.000Z",
        "lastUpdated": "2024-03-02T10:00:00.000Z",
        "createdOn": "2024-02-01T10:00:00.000Z",
        "isArchived": False,
        "fileIds": {"mainImage": "f-main", "thumbnail": "f-thumb"},
    }


@pytest.mark.parametrize("content_type", sorted(FIELD_TABLES))
@pytest.mark.parametrize("is_draft,expected", [(True, "draft"), (False, "published")])
def test_status_follows_is_draft(content_type, is_draft, expected):
    record = {"id": "x1", "isDraft": is_draft, "fieldData": {"name": "Item", "slug": "item"}}
    item = map_record(record, content_type)
    assert item.status == expected
    assert item.data["status"] == expected


@pytest.mark.parametrize("content_type", sorted(FIELD_TABLES))
def test_missing_fields_get_defaults(content_type):
    table = FIELD_TABLES[content_type]
    item = map_record({"id": "abc123", "fieldData": {}}, content_type)
    assert item.title == table.default_title
    assert item.slug == "abc123"
    for destination in table.flag_fields.values():
        assert item.data[destination] is False
    for destination in table.gallery_fields.values():
        assert item.data[destination] == []
    for destination in table.multi_reference_fields.values():
        assert item.data[destination] == []
    for destination in table.reference_fields.values():
        assert item.data[destination] is None
    for destination in table.image_fields.values():
        assert item.data[destination] is None


def test_slug_falls_back_to_title_without_id():
    item = map_record({"fieldData": {"name": "Gestão de Água"}}, "news")
    assert item.slug == "gestao-de-agua"


def test_missing_date_is_not_replaced_by_now():
    record = _post()
    del record["fieldData"]["date-published"]
    assert map_record(record, "post").data["datePublished"] is None


def test_mapping_is_deterministic():
    first = map_record(_post(), "post")
    second = map_record(_post(), "post")
    assert first.model_dump() == second.model_dump()


def test_non_mapping_record_raises_type_error():
    with pytest.raises(TypeError):
        map_record(["not", "a", "record"], "post")


def test_unknown_content_type():
    with pytest.raises(ValueError):
        map_record({"fieldData": {}}, "publication")


def test_event_renames():
    record = {
        "id": "e1",
        "isDraft": True,
        "fieldData": {
            "name": "Climate Forum",
            "slug": "climate-forum",
            "time": "18:00",
            "short-description-2": "A forum.",
            "video-as-hero-on-off": True,
            "related-programme-s": ["p1"],
            "image-gallery": [{"url": "https://cdn.prod.website-files.com/e/1.jpg"}],
        },
    }
    data = map_record(record, "event").data
    assert data["eventTime"] == "18:00"
    assert data["shortDescription"] == "A forum."
    assert data["description"] == "A forum."
    assert data["videoAsHero"] is True
    assert data["relatedProgrammes"] == [{"id": "p1", "slug": "p1"}]
    assert data["imageGallery"] == [{"url": "https://cdn.prod.website-files.com/e/1.jpg", "alt": None}]


def test_team_and_programme_fields():
    team = map_record(
        {"id": "t1", "fieldData": {"name": "Jane Doe", "photo-hires": {"url": "https://x.test/jane.jpg"}}},
        "team",
    ).data
    assert team["name"] == "Jane Doe"
    assert team["photoHires"] == {"url": "https://x.test/jane.jpg", "alt": None}

    programme = map_record(
        {"id": "p1", "fieldData": {"name": "J-WAFS", "impact-01-title": "Water", "type": "Lab", "shortname": "JW"}},
        "programme",
    ).data
    assert programme["impact01Title"] == "Water"
    assert programme["programmeType"] == "Lab"
    assert programme["shortNameEnglish"] == "JW"


def test_reference_normalization_rules():
    assert normalize_reference("abc") == {"id": "abc", "slug": "abc"}
    assert normalize_reference({"id": "abc", "slug": "water"}) == {"id": "abc", "slug": "water"}
    assert normalize_reference({"id": "abc"}) == {"id": "abc", "slug": "abc"}
    assert normalize_reference({"slug": "water"}) == {"id": "water", "slug": "water"}
    assert normalize_reference(["first", "second"]) == {"id": "first", "slug": "first"}
    assert normalize_reference("") is None
    assert normalize_reference({}) is None
    assert normalize_references("solo") == [{"id": "solo", "slug": "solo"}]
    assert normalize_references(["a", "", None, {"id": "b"}]) == [
        {"id": "a", "slug": "a"},
        {"id": "b", "slug": "b"},
    ]


def test_camel_case():
    assert camel_case("open-graph-image") == "openGraphImage"
    assert camel_case("impact-01-title-arabic") == "impact01TitleArabic"
    assert camel_case("featured") == "featured"
