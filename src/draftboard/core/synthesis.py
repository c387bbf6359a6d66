"""Turn scene-graph nodes into markup text plus the imports that markup needs."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping

from draftboard.core.registry import (
    ComponentDefinition,
    PropValue,
    definition_for_tag,
    generic_definition,
    get_component_definition,
)
from draftboard.models import CanvasNode, GeneratedCode, ImportRequirement, LayoutConfig, NodeKind, NodeStyle

INDENT = "  "
_TAG_PATTERN = re.compile(r"<([A-Z][A-Za-z0-9]*)")
_JSX_ESCAPES = {"{": "&#123;", "}": "&#125;", "<": "&lt;", ">": "&gt;"}
_ALIGN_ITEMS = {"start": "flex-start", "center": "center", "end": "flex-end", "stretch": "stretch"}


def indent(text: str, prefix: str = INDENT) -> str:
    return "\n".join(prefix + line if line.strip() else line for line in text.split("\n"))


def escape_text(text: str) -> str:
    return "".join(_JSX_ESCAPES.get(ch, ch) for ch in text)


def _js_value(value: PropValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


def render_props(props: Mapping[str, PropValue]) -> str:
    parts: list[str] = []
    for name, value in props.items():
        if value is True:
            parts.append(f" {name}")
        elif isinstance(value, str) and '"' not in value and "\n" not in value:
            parts.append(f' {name}="{value}"')
        else:
            parts.append(f" {name}={{{_js_value(value)}}}")
    return "".join(parts)


def _style_entries(style: NodeStyle | None) -> list[tuple[str, PropValue]]:
    if style is None:
        return []
    entries: list[tuple[str, PropValue]] = []
    if style.background_color:
        entries.append(("backgroundColor", style.background_color))
    if style.border_width:
        entries.append(("borderWidth", style.border_width))
        entries.append(("borderStyle", "solid"))
        if style.border_color:
            entries.append(("borderColor", style.border_color))
    if style.border_radius:
        entries.append(("borderRadius", style.border_radius))
    return entries


def _layout_entries(layout: LayoutConfig) -> list[tuple[str, PropValue]]:
    entries: list[tuple[str, PropValue]] = [
        ("display", "flex"),
        ("flexDirection", layout.direction),
        ("gap", layout.gap),
    ]
    if layout.padding:
        entries.append(("padding", layout.padding))
    if layout.align_items:
        entries.append(("alignItems", _ALIGN_ITEMS[layout.align_items]))
    return entries


def render_style(entries: Iterable[tuple[str, PropValue]]) -> str:
    body = ", ".join(f"{key}: {_js_value(value)}" for key, value in entries)
    return f" style={{{{ {body} }}}}" if body else ""


def dedupe_imports(imports: Iterable[ImportRequirement]) -> list[ImportRequirement]:
    seen: set[tuple[str, str]] = set()
    result: list[ImportRequirement] = []
    for item in imports:
        key = (item.component_name, item.import_path)
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _requirement(definition: ComponentDefinition, name: str | None = None) -> ImportRequirement:
    return ImportRequirement(
        component_name=name or definition.component_name,
        import_path=definition.import_path,
        is_named_export=definition.named_export,
    )


def _referenced_imports(definition: ComponentDefinition, markup: str) -> list[ImportRequirement]:
    """Imports for the component tags used inside a definition's default children."""
    imports: list[ImportRequirement] = []
    for tag in _TAG_PATTERN.findall(markup):
        if tag in definition.sub_components:
            imports.append(_requirement(definition, tag))
        elif tag != definition.component_name:
            other = definition_for_tag(tag)
            if other is not None:
                imports.append(_requirement(other))
    return imports


def _component_code(node: CanvasNode) -> GeneratedCode:
    component_type = node.component_type or node.name or "Component"
    definition = get_component_definition(component_type)
    if definition is None:
        definition = generic_definition(component_type)
        tag = definition.component_name
        return GeneratedCode(markup=f"<{tag} />", imports=[_requirement(definition)])

    tag = definition.component_name
    attrs = render_props({**definition.default_props, **node.props}) + render_style(_style_entries(node.style))
    imports = [_requirement(definition)]
    if definition.default_children is None:
        return GeneratedCode(markup=f"<{tag}{attrs} />", imports=imports)

    children = definition.default_children
    imports.extend(_referenced_imports(definition, children))
    if "\n" in children or children.lstrip().startswith("<"):
        markup = f"<{tag}{attrs}>\n{indent(children)}\n</{tag}>"
    else:
        markup = f"<{tag}{attrs}>{children}</{tag}>"
    return GeneratedCode(markup=markup, imports=dedupe_imports(imports))


def _text_code(node: CanvasNode) -> GeneratedCode:
    content = (node.content or "").strip() or "Text"
    return GeneratedCode(markup=f"<p>{escape_text(content)}</p>")


def _container_code(node: CanvasNode, nodes: Mapping[str, CanvasNode]) -> GeneratedCode:
    layout = node.layout or LayoutConfig()
    children = [nodes[child_id] for child_id in node.children if child_id in nodes]
    if not children:
        size: list[tuple[str, PropValue]] = [("width", node.width), ("height", node.height)]
        return GeneratedCode(markup=f"<div{render_style(size + _style_entries(node.style))} />")

    style = render_style(_layout_entries(layout) + _style_entries(node.style))
    parts: list[str] = []
    imports: list[ImportRequirement] = []
    for child in children:
        code = generate_code(child, nodes)
        parts.append(indent(code.markup))
        imports.extend(code.imports)
    markup = f"<div{style}>\n" + "\n".join(parts) + "\n</div>"
    return GeneratedCode(markup=markup, imports=dedupe_imports(imports))


def generate_code(node: CanvasNode, nodes: Mapping[str, CanvasNode]) -> GeneratedCode:
    """Markup for ``node`` and its subtree.

    Pure and deterministic: the same node and subtree always produce the same
    markup and the same import list.
    """
    if node.kind == NodeKind.TEXT:
        return _text_code(node)
    if node.kind == NodeKind.COMPONENT and not node.children:
        return _component_code(node)
    return _container_code(node, nodes)
