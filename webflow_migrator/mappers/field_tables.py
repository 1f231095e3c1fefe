"""
Field-translation tables, one per Mnemo content type.

Each table lists the Webflow ``fieldData`` keys (kebab-case) a content type
carries and the ``data`` key (camelCase) they land on in Mnemo.  A name given
on its own maps to its camelCase form; a ``(source, destination)`` pair
renames it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

FieldEntry = Union[str, Tuple[str, str]]


def camel_case(name: str) -> str:
    """``"open-graph-image"`` -> ``"openGraphImage"``."""
    head, *rest = [p for p in name.split("-") if p]
    return head.lower() + "".join(p[:1].upper() + p[1:] for p in rest)


def _fields(*entries: FieldEntry) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for entry in entries:
        if isinstance(entry, tuple):
            source, destination = entry
        else:
            source, destination = entry, camel_case(entry)
        out[source] = destination
    return out


@dataclass(frozen=True)
class FieldTable:
    content_type: str
    default_title: str
    text_fields: Mapping[str, str] = field(default_factory=dict)
    flag_fields: Mapping[str, str] = field(default_factory=dict)
    image_fields: Mapping[str, str] = field(default_factory=dict)
    gallery_fields: Mapping[str, str] = field(default_factory=dict)
    reference_fields: Mapping[str, str] = field(default_factory=dict)
    multi_reference_fields: Mapping[str, str] = field(default_factory=dict)
    description_field: Optional[str] = None
    rich_text_fields: Tuple[str, ...] = ()
    title_field: str = "name"

    def destination(self, source_field: str) -> Optional[str]:
        """The ``data`` key a source field is written to, if the table knows it."""
        for group in (
            self.text_fields,
            self.flag_fields,
            self.image_fields,
            self.gallery_fields,
            self.reference_fields,
            self.multi_reference_fields,
        ):
            if source_field in group:
                return group[source_field]
        return None


POST = FieldTable(
    content_type="post",
    default_title="Untitled Post",
    text_fields=_fields(
        ("arabic-title", "arabicTitle"),
        ("date-published", "datePublished"),
        "location",
        ("location-arabic", "locationArabic"),
        ("seo-title", "seoTitle"),
        ("seo-title-arabic", "seoTitleArabic"),
        ("seo-meta", "seoMeta"),
        ("seo-meta-arabic", "seoMetaArabic"),
        ("body", "bodyEnglish"),
        ("body-arabic", "bodyArabic"),
        "bullet-points-english",
        "bullet-points-arabic",
        ("hero-video-youtube-embed-id", "heroVideoYoutubeId"),
        ("hero-video-arabic-youtube-video-id", "heroVideoArabicYoutubeId"),
        "alt-text-for-hero-image",
        "alt-text-hero-image-arabic",
        "photo-credit-hero-image",
        "hero-image-photo-credit-arabic",
        ("image-carousel-credits", "imageGalleryCredits"),
        ("image-gallery-credits-arabic", "imageGalleryCreditsArabic"),
    ),
    flag_fields=_fields(
        "arabic-complete-incomplete",
        ("video-as-hero-yes-no", "videoAsHero"),
        "featured",
        ("push-to-gr", "pushToGR"),
    ),
    image_fields=_fields("main-image", "thumbnail", "open-graph-image", "hero-image"),
    gallery_fields=_fields(("image-carousel", "imageCarousel")),
    reference_fields=_fields(
        ("programme-2", "programmeLabel"),
        ("blogs-categories-2", "blogCategory"),
        ("related-event", "relatedEvent"),
    ),
    multi_reference_fields=_fields(
        ("programmes-multiple", "relatedProgrammes"),
        ("theme-3", "tags"),
        "people",
        "innovations",
    ),
    description_field="body",
    rich_text_fields=("body", "body-arabic"),
)

EVENT = FieldTable(
    content_type="event",
    default_title="Untitled Event",
    text_fields=_fields(
        "arabic-title",
        "event-date",
        "end-date",
        ("time", "eventTime"),
        "address",
        "city",
        "seo-title",
        "seo-meta-description",
        "hero-image-caption",
        ("trailer-livestream-highlights-video-link", "trailerVideoLink"),
        "related-people-rich-text",
        ("short-description-2", "shortDescription"),
    ),
    flag_fields=_fields(
        "featured",
        ("push-to-gr", "pushToGR"),
        ("video-as-hero-on-off", "videoAsHero"),
        "news-on-off",
        "in-the-media-on-off",
        "more-details-on-off",
    ),
    image_fields=_fields("hero-image", "thumbnail", "open-graph-image"),
    gallery_fields=_fields("image-gallery"),
    reference_fields=_fields("programme-label"),
    multi_reference_fields=_fields(
        ("related-programme-s", "relatedProgrammes"),
        "organisers",
        "partners",
        "people",
    ),
    description_field="short-description-2",
    rich_text_fields=("related-people-rich-text",),
)

NEWS = FieldTable(
    content_type="news",
    default_title="Untitled News",
    text_fields=_fields("arabic-title", "date-published", "external-link", "summary", "sources"),
    flag_fields=_fields("featured", ("push-to-gr", "pushToGR"), "remove-from-news-grid"),
    image_fields=_fields("hero-image", "thumbnail"),
    reference_fields=_fields(("programme", "programmeLabel")),
    multi_reference_fields=_fields(("programme-s", "relatedProgrammes"), "people"),
    description_field="summary",
)

TEAM = FieldTable(
    content_type="team",
    default_title="Untitled Team",
    text_fields=_fields(
        "name",
        "name-arabic",
        "position",
        "position-arabic",
        "alt-text-image",
        "alt-text-image-arabic",
        "paragraph-description",
        "biography-arabic",
        "meta-description",
        "meta-description-arabic",
        "filter",
        "order",
    ),
    flag_fields=_fields("news-on-off"),
    image_fields=_fields("photo", ("photo-hires", "photoHires")),
    multi_reference_fields=_fields("tags"),
    description_field="paragraph-description",
    rich_text_fields=("paragraph-description",),
)

_IMPACT_FIELDS = tuple(
    name
    for n in range(1, 7)
    for name in (f"impact-0{n}", f"impact-0{n}-title", f"impact-0{n}-title-arabic")
)

PROGRAMME = FieldTable(
    content_type="programme",
    default_title="Untitled Programme",
    text_fields=_fields(
        "name-arabic",
        ("shortname", "shortNameEnglish"),
        "short-name-arabic",
        "byline",
        ("byline-arabic", "missionArabic"),
        ("text", "missionEnglish"),
        ("summary-long-english", "summaryEnglish"),
        ("summary-long-arabic", "summaryArabic"),
        ("field-english-research", "researchEnglish"),
        ("field-arabic-research", "researchArabic"),
        "year-established",
        "year-closed",
        "headquarters-english",
        "headquarters-arabic",
        "longitude",
        "latitude",
        "website",
        "linkedin",
        "instagram",
        "twitter",
        "facebook",
        "youtube",
        *_IMPACT_FIELDS,
        "order",
        "button-text",
        "link-to-page",
        "colour",
        ("type", "programmeType"),
    ),
    flag_fields=_fields(("push-to-gr", "pushToGR")),
    image_fields=_fields(
        "card",
        "hero",
        "open-graph",
        "logo-svg-dark",
        "logo-svg-original-ratio",
        "logo-svg-square-overlay",
        "logo-svg-light-original-ratio",
    ),
    multi_reference_fields=_fields("partners", "leadership", "related-programmes"),
    description_field="byline",
)

FIELD_TABLES: Dict[str, FieldTable] = {
    table.content_type: table for table in (POST, EVENT, NEWS, TEAM, PROGRAMME)
}


def table_for(content_type: str) -> FieldTable:
    try:
        return FIELD_TABLES[content_type]
    except KeyError:
        raise ValueError(f"Unknown content type: {content_type!r}") from None
