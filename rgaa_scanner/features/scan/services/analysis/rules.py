"""
RGAA rule checks.

Each check is an independent function `(PageContext) -> List[Finding]` that
inspects the parsed document of one page. The ordered `RGAA_CHECKS` registry
is what the analyzer iterates, so adding or removing a rule is a change to that
tuple only. Findings of a single check come out in document order.

Constant tables (vague link phrases, low contrast palette, decorative image
markers) are grouped in `AnalyzerConfig` so tests can run a check against a
crafted fixture with a different table.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from rgaa_scanner.features.scan.models.scan_issue import IssueSeverity
from rgaa_scanner.features.scan.schemas.finding import Finding

# Stored element markup is capped, <ul> or <style> blocks can be huge
ELEMENT_HTML_MAX_LENGTH = 1000

VAGUE_LINK_TEXTS: Tuple[str, ...] = (
    "cliquez ici",
    "ici",
    "lire la suite",
    "plus",
    "voir plus",
    "en savoir plus",
    "click here",
    "here",
    "read more",
    "more",
    "learn more",
)

LOW_CONTRAST_PATTERNS: Tuple[str, ...] = (
    "color:#999",
    "color:#ccc",
    "color:#ddd",
    "color:#aaa",
    "color:#bbb",
)

DECORATIVE_SRC_MARKERS: Tuple[str, ...] = ("decoration", "border", "spacer", "pixel.gif")
DECORATIVE_ROLES: Tuple[str, ...] = ("presentation",)

FORM_CONTROL_TAGS: Tuple[str, ...] = ("input", "textarea", "select")
UNLABELLED_INPUT_TYPES: Tuple[str, ...] = ("hidden", "submit", "button")

HEADING_TAG_RE = re.compile(r"^h[1-6]$")


@dataclass(frozen=True)
class AnalyzerConfig:
    vague_link_texts: Tuple[str, ...] = VAGUE_LINK_TEXTS
    low_contrast_patterns: Tuple[str, ...] = LOW_CONTRAST_PATTERNS
    decorative_src_markers: Tuple[str, ...] = DECORATIVE_SRC_MARKERS
    decorative_roles: Tuple[str, ...] = DECORATIVE_ROLES


@dataclass
class PageContext:
    url: str
    soup: BeautifulSoup
    config: AnalyzerConfig = field(default_factory=AnalyzerConfig)


@dataclass(frozen=True)
class RuleCheck:
    rule_id: str
    name: str
    check: Callable[[PageContext], List[Finding]]


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _snippet(element: Optional[Tag]) -> Optional[str]:
    if element is None:
        return None
    html = str(element)
    if len(html) > ELEMENT_HTML_MAX_LENGTH:
        return html[:ELEMENT_HTML_MAX_LENGTH] + "..."
    return html


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    # class-like attributes come back as lists from bs4
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _normalize_text(text: str) -> str:
    return " ".join(text.split()).lower()


def is_decorative_image(img: Tag, config: AnalyzerConfig) -> bool:
    """role="presentation" or a src that looks like a spacer/border/decoration asset."""
    role = _attr(img, "role").lower()
    if role in config.decorative_roles:
        return True
    src = _attr(img, "src").lower()
    return any(marker in src for marker in config.decorative_src_markers)


def is_vague_link_text(text: str, config: AnalyzerConfig) -> bool:
    """
    Single-word phrases ("ici", "here") must be the whole link text, otherwise
    they would match inside ordinary words. Multi-word phrases match anywhere.
    """
    normalized = _normalize_text(text)
    for phrase in config.vague_link_texts:
        if " " in phrase:
            if phrase in normalized:
                return True
        elif normalized == phrase:
            return True
    return False


def _finding(ctx: PageContext, **fields) -> Finding:
    return Finding(page_url=ctx.url, **fields)


# ─────────────────────────────────────────────────────────────
# Checks
# ─────────────────────────────────────────────────────────────

def check_images_alt_text(ctx: PageContext) -> List[Finding]:
    """RGAA 1.1: informative images must carry an alt attribute."""
    findings = []
    for img in ctx.soup.find_all("img"):
        if img.get("alt") is not None or is_decorative_image(img, ctx.config):
            continue
        src = _attr(img, "src")
        findings.append(_finding(
            ctx,
            rule_id="RGAA_1_1",
            title="Image without text alternative",
            description="This informative image has no alt attribute.",
            severity=IssueSeverity.critical,
            element_selector=f"img[src='{src}']",
            element_html=_snippet(img),
            fix_suggestion="Add an alt attribute describing the content of the image.",
            code_example=f'<img src="{src}" alt="Description of the image">',
        ))
    return findings


def _link_has_accessible_name(link: Tag) -> bool:
    if link.get_text(strip=True):
        return True
    if _attr(link, "aria-label"):
        return True
    return any(_attr(img, "alt") for img in link.find_all("img"))


def check_link_text(ctx: PageContext) -> List[Finding]:
    """RGAA 6.1: link text must make sense out of context."""
    findings = []
    for link in ctx.soup.find_all("a", href=True):
        text = link.get_text(" ", strip=True)
        if _link_has_accessible_name(link) and not is_vague_link_text(text, ctx.config):
            continue
        href = _attr(link, "href")
        findings.append(_finding(
            ctx,
            rule_id="RGAA_6_1",
            title="Non-descriptive link",
            description="This link is empty or its text is not explicit out of context.",
            severity=IssueSeverity.critical,
            element_selector=f"a[href='{href}']",
            element_html=_snippet(link),
            fix_suggestion="Use link text that describes the destination or the function of the link.",
            code_example='<a href="/contact">Contact our support team</a>',
        ))
    return findings


def _control_has_label(control: Tag, soup: BeautifulSoup) -> bool:
    if _attr(control, "aria-label") or _attr(control, "aria-labelledby"):
        return True
    control_id = _attr(control, "id")
    if control_id and soup.find("label", attrs={"for": control_id}) is not None:
        return True
    return control.find_parent("label") is not None


def check_form_labels(ctx: PageContext) -> List[Finding]:
    """RGAA 11.1: every form field needs a label."""
    findings = []
    for control in ctx.soup.find_all(FORM_CONTROL_TAGS):
        if control.name == "input" and _attr(control, "type").lower() in UNLABELLED_INPUT_TYPES:
            continue
        if _control_has_label(control, ctx.soup):
            continue
        name = _attr(control, "name")
        control_id = _attr(control, "id") or name or "field"
        if name:
            selector = f"{control.name}[name='{name}']"
        elif _attr(control, "id"):
            selector = f"{control.name}#{control_id}"
        else:
            selector = control.name
        findings.append(_finding(
            ctx,
            rule_id="RGAA_11_1",
            title="Form field without label",
            description="This form field has no associated label.",
            severity=IssueSeverity.critical,
            element_selector=selector,
            element_html=_snippet(control),
            fix_suggestion="Associate a label with the field using the for attribute or aria-label.",
            code_example=(
                f'<label for="{control_id}">Field label</label>\n'
                f'<input type="text" id="{control_id}" name="{name or control_id}">'
            ),
        ))
    return findings


def _declares_low_contrast(css: str, patterns: Tuple[str, ...]) -> bool:
    compact = re.sub(r"\s+", "", css).lower()
    if "color:" not in compact or "background" not in compact:
        return False
    # Plain substring match, so "background-color:#999" counts too
    return any(pattern in compact for pattern in patterns)


def check_color_contrast(ctx: PageContext) -> List[Finding]:
    """RGAA 3.2: basic detection of known low contrast colors in inline styles."""
    findings = []
    for style in ctx.soup.find_all("style"):
        css = style.get_text()
        if not _declares_low_contrast(css, ctx.config.low_contrast_patterns):
            continue
        findings.append(_finding(
            ctx,
            rule_id="RGAA_3_2",
            title="Insufficient color contrast",
            description="The contrast between text and background may be insufficient.",
            severity=IssueSeverity.warning,
            element_selector="style",
            element_html=_snippet(style),
            fix_suggestion="Make sure the contrast ratio is at least 4.5:1 for normal text.",
            code_example="color: #333; background: #fff; /* contrast 12.6:1 */",
        ))
    return findings


def check_page_title(ctx: PageContext) -> List[Finding]:
    """RGAA 8.5: every page has a non-empty <title>."""
    title = ctx.soup.find("title")
    if title is not None and title.get_text(strip=True):
        return []
    return [_finding(
        ctx,
        rule_id="RGAA_8_5",
        title="Missing page title",
        description="This page has no title or the title is empty.",
        severity=IssueSeverity.critical,
        element_selector="title",
        element_html=_snippet(title) or "<title></title>",
        fix_suggestion="Add a descriptive title to the page.",
        code_example="<title>Home - My Website</title>",
    )]


def check_page_language(ctx: PageContext) -> List[Finding]:
    """RGAA 8.3: the default language is declared on <html>."""
    html = ctx.soup.find("html")
    if html is not None and _attr(html, "lang"):
        return []
    opening_tag = "<html>"
    if html is not None:
        attrs = "".join(f' {key}="{_attr(html, key)}"' for key in html.attrs)
        opening_tag = f"<html{attrs}>"
    return [_finding(
        ctx,
        rule_id="RGAA_8_3",
        title="Page language not declared",
        description="The main language of the page is not declared.",
        severity=IssueSeverity.warning,
        element_selector="html",
        element_html=opening_tag,
        fix_suggestion="Add the lang attribute to the html element.",
        code_example='<html lang="en">',
    )]


def check_heading_structure(ctx: PageContext) -> List[Finding]:
    """RGAA 9.1: heading levels never skip a level going down."""
    findings = []
    headings = ctx.soup.find_all(HEADING_TAG_RE)
    for previous, current in zip(headings, headings[1:]):
        prev_level = int(previous.name[1])
        level = int(current.name[1])
        if level <= prev_level + 1:
            continue
        findings.append(_finding(
            ctx,
            rule_id="RGAA_9_1",
            title="Skipped level in heading hierarchy",
            description=f"Jump from h{prev_level} to h{level} without an intermediate level.",
            severity=IssueSeverity.warning,
            element_selector=f"h{level}",
            element_html=_snippet(current),
            fix_suggestion="Follow the heading hierarchy without skipping levels.",
            code_example=f"<h{prev_level}>Title</h{prev_level}>\n<h{prev_level + 1}>Subtitle</h{prev_level + 1}>",
        ))
    return findings


def check_landmarks(ctx: PageContext) -> List[Finding]:
    """RGAA 12.6: the main content area is identified."""
    if ctx.soup.find("main") is not None or ctx.soup.find(attrs={"role": "main"}) is not None:
        return []
    return [_finding(
        ctx,
        rule_id="RGAA_12_6",
        title="Missing main content landmark",
        description="The page has no identified main region.",
        severity=IssueSeverity.warning,
        element_selector="body",
        element_html="No main element found",
        fix_suggestion="Add a main element around the main content of the page.",
        code_example="<main>Main content of the page</main>",
    )]


def check_decorative_images(ctx: PageContext) -> List[Finding]:
    """RGAA 1.2: empty alt on an image that does not look decorative."""
    findings = []
    for img in ctx.soup.find_all("img", alt=True):
        src = _attr(img, "src")
        if _attr(img, "alt") or not src or is_decorative_image(img, ctx.config):
            continue
        findings.append(_finding(
            ctx,
            rule_id="RGAA_1_2",
            title="Image possibly mis-tagged as decorative",
            description="This image has an empty alt but may convey information.",
            severity=IssueSeverity.info,
            element_selector=f"img[src='{src}']",
            element_html=_snippet(img),
            fix_suggestion="Check whether this image is really decorative or needs a description.",
            code_example='<img src="decoration.png" alt="" role="presentation">',
        ))
    return findings


def check_list_structure(ctx: PageContext) -> List[Finding]:
    """RGAA 9.3: ul/ol only contain li children."""
    findings = []
    for list_element in ctx.soup.find_all(["ul", "ol"]):
        children = [child for child in list_element.children if isinstance(child, Tag)]
        if all(child.name == "li" for child in children):
            continue
        findings.append(_finding(
            ctx,
            rule_id="RGAA_9_3",
            title="Incorrect list structure",
            description="This list contains elements that are not list items (li).",
            severity=IssueSeverity.warning,
            element_selector=list_element.name,
            element_html=_snippet(list_element),
            fix_suggestion="Lists must only contain li elements as direct children.",
            code_example="<ul><li>Item 1</li><li>Item 2</li></ul>",
        ))
    return findings


RGAA_CHECKS: Tuple[RuleCheck, ...] = (
    RuleCheck("RGAA_1_1", "Images without text alternative", check_images_alt_text),
    RuleCheck("RGAA_6_1", "Non-descriptive links", check_link_text),
    RuleCheck("RGAA_11_1", "Form fields without label", check_form_labels),
    RuleCheck("RGAA_3_2", "Color contrast", check_color_contrast),
    RuleCheck("RGAA_8_5", "Page title", check_page_title),
    RuleCheck("RGAA_8_3", "Page language", check_page_language),
    RuleCheck("RGAA_9_1", "Heading structure", check_heading_structure),
    RuleCheck("RGAA_12_6", "Main landmark", check_landmarks),
    RuleCheck("RGAA_1_2", "Decorative images", check_decorative_images),
    RuleCheck("RGAA_9_3", "List structure", check_list_structure),
)

RULE_NAMES = {rule.rule_id: rule.name for rule in RGAA_CHECKS}
