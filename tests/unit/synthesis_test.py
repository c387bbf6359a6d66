"""Tests for markup synthesis from scene nodes."""

from __future__ import annotations

from draftboard.core.registry import (
    build_component_registry,
    display_name_to_key,
    get_component_definition,
    pascal_case,
)
from draftboard.core.scene import SceneGraph
from draftboard.core.synthesis import escape_text, generate_code, render_props
from draftboard.models import CanvasNode, LayoutConfig, NodeKind, NodeStyle


def _generate(node: CanvasNode) -> tuple[str, list[tuple[str, str]]]:
    code = generate_code(node, {node.id: node})
    return code.markup, [(i.component_name, i.import_path) for i in code.imports]


class TestComponents:
    def test_button_with_default_children(self) -> None:
        markup, imports = _generate(CanvasNode(id="n", component_type="button"))
        assert markup == "<Button>Click me</Button>"
        assert imports == [("Button", "./components/ui/button")]

    def test_display_name_lookup(self) -> None:
        markup, _ = _generate(CanvasNode(id="n", component_type="Radio Group"))
        assert markup.startswith('<RadioGroup defaultValue="option-1">')

    def test_props_override_defaults(self) -> None:
        node = CanvasNode(id="n", component_type="button", props={"variant": "outline", "disabled": True})
        markup, _ = _generate(node)
        assert markup == '<Button variant="outline" disabled>Click me</Button>'

    def test_self_closing_with_default_props(self) -> None:
        markup, _ = _generate(CanvasNode(id="n", component_type="input"))
        assert markup == '<Input placeholder="Enter text..." />'

    def test_numeric_props_are_expressions(self) -> None:
        markup, _ = _generate(CanvasNode(id="n", component_type="slider"))
        assert markup == "<Slider value={50} max={100} step={1} />"

    def test_card_imports_its_sub_components(self) -> None:
        markup, imports = _generate(CanvasNode(id="n", component_type="card"))
        assert markup == (
            "<Card>\n"
            "  <CardHeader>\n"
            "    <CardTitle>Card Title</CardTitle>\n"
            "    <CardDescription>Card description</CardDescription>\n"
            "  </CardHeader>\n"
            "  <CardContent>\n"
            "    <p>Content goes here.</p>\n"
            "  </CardContent>\n"
            "</Card>"
        )
        assert [name for name, _ in imports] == ["Card", "CardHeader", "CardTitle", "CardDescription", "CardContent"]
        assert {path for _, path in imports} == {"./components/ui/card"}

    def test_dialog_imports_the_button_it_uses(self) -> None:
        _, imports = _generate(CanvasNode(id="n", component_type="dialog"))
        assert ("Button", "./components/ui/button") in imports
        assert ("DialogTrigger", "./components/ui/dialog") in imports

    def test_unknown_component_gets_generic_tag(self) -> None:
        markup, imports = _generate(CanvasNode(id="n", component_type="Date Picker"))
        assert markup == "<DatePicker />"
        assert imports == [("DatePicker", "./components/ui/date-picker")]

    def test_style_is_rendered_inline(self) -> None:
        style = NodeStyle(background_color="#fff", border_width=1, border_color="#000", border_radius=4)
        markup, _ = _generate(CanvasNode(id="n", component_type="badge", style=style))
        assert markup == (
            '<Badge style={{ backgroundColor: "#fff", borderWidth: 1, borderStyle: "solid", '
            'borderColor: "#000", borderRadius: 4 }}>Badge</Badge>'
        )


class TestText:
    def test_content_is_escaped(self) -> None:
        markup, imports = _generate(CanvasNode(id="t", kind=NodeKind.TEXT, content="a < b {x}"))
        assert markup == "<p>a &lt; b &#123;x&#125;</p>"
        assert imports == []

    def test_empty_content_uses_placeholder(self) -> None:
        markup, _ = _generate(CanvasNode(id="t", kind=NodeKind.TEXT, content="   "))
        assert markup == "<p>Text</p>"


class TestContainers:
    def test_empty_frame_keeps_its_size(self) -> None:
        markup, _ = _generate(CanvasNode(id="f", kind=NodeKind.FRAME, width=200, height=100))
        assert markup == "<div style={{ width: 200, height: 100 }} />"

    def test_frame_lays_out_children(self) -> None:
        scene = SceneGraph()
        scene.add_node(CanvasNode(id="f", kind=NodeKind.FRAME, layout=LayoutConfig(direction="column", gap=12)))
        scene.add_node(CanvasNode(id="b", component_type="button", parent_id="f"))
        scene.add_node(CanvasNode(id="t", kind=NodeKind.TEXT, content="Hi", parent_id="f"))

        code = generate_code(scene.nodes["f"], scene.nodes)

        assert code.markup == (
            '<div style={{ display: "flex", flexDirection: "column", gap: 12 }}>\n'
            "  <Button>Click me</Button>\n"
            "  <p>Hi</p>\n"
            "</div>"
        )
        assert [i.component_name for i in code.imports] == ["Button"]

    def test_nested_imports_are_deduplicated(self) -> None:
        scene = SceneGraph()
        scene.add_node(CanvasNode(id="f", kind=NodeKind.FRAME, layout=LayoutConfig(padding=16, align_items="center")))
        scene.add_node(CanvasNode(id="g", kind=NodeKind.GROUP, parent_id="f"))
        scene.add_node(CanvasNode(id="b1", component_type="button", parent_id="g"))
        scene.add_node(CanvasNode(id="b2", component_type="button", parent_id="g"))
        scene.add_node(CanvasNode(id="b3", component_type="button", parent_id="f"))

        code = generate_code(scene.nodes["f"], scene.nodes)

        assert code.markup.splitlines()[0] == (
            '<div style={{ display: "flex", flexDirection: "row", gap: 8, padding: 16, alignItems: "center" }}>'
        )
        assert code.markup.count("<Button>Click me</Button>") == 3
        assert "    <Button>Click me</Button>" in code.markup
        assert [i.component_name for i in code.imports] == ["Button"]

    def test_output_is_deterministic(self) -> None:
        scene = SceneGraph()
        scene.add_node(CanvasNode(id="f", kind=NodeKind.FRAME))
        scene.add_node(CanvasNode(id="c", component_type="card", parent_id="f"))
        first = generate_code(scene.nodes["f"], scene.nodes)
        second = generate_code(scene.nodes["f"], scene.nodes)
        assert first == second


class TestHelpers:
    def test_render_props(self) -> None:
        assert render_props({"a": "x", "b": True, "c": 2.0, "d": 'say "hi"', "e": False}) == (
            ' a="x" b c={2} d={"say \\"hi\\""} e={false}'
        )

    def test_escape_text(self) -> None:
        assert escape_text("{}<>") == "&#123;&#125;&lt;&gt;"

    def test_names(self) -> None:
        assert display_name_to_key("Date  Picker") == "date-picker"
        assert pascal_case("date-picker") == "DatePicker"
        assert get_component_definition("Radio Group") is get_component_definition("radio-group")

    def test_registry_from_project_files(self) -> None:
        registry = build_component_registry(
            ["/components/ui/card.tsx", "/components/ui/date-picker.tsx", "/App.tsx", "/components/Header.tsx"]
        )
        assert [d.display_name for d in registry] == ["Card", "Date Picker"]
