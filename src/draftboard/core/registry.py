"""Known UI components that ghost elements can be materialized as."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

UI_COMPONENT_DIR = "./components/ui"
_UI_FILE_PATTERN = re.compile(r"^/components/ui/([^/]+)\.tsx$")

PropValue = str | bool | int | float


@dataclass(frozen=True)
class ComponentDefinition:
    key: str
    component_name: str
    default_width: float
    default_height: float
    default_props: dict[str, PropValue] = field(default_factory=dict)
    default_children: str | None = None
    sub_components: tuple[str, ...] = ()
    named_export: bool = True

    @property
    def import_path(self) -> str:
        return f"{UI_COMPONENT_DIR}/{self.key}"

    @property
    def display_name(self) -> str:
        return " ".join(word.capitalize() for word in self.key.split("-"))


def display_name_to_key(name: str) -> str:
    """``"Date Picker"`` -> ``"date-picker"``."""
    return re.sub(r"\s+", "-", name.strip().lower())


def pascal_case(name: str) -> str:
    return "".join(word[:1].upper() + word[1:] for word in re.split(r"[\s_-]+", name.strip()) if word)


def _define(key: str, name: str, width: float, height: float, **kwargs: Any) -> ComponentDefinition:
    return ComponentDefinition(key=key, component_name=name, default_width=width, default_height=height, **kwargs)


KNOWN_COMPONENTS: dict[str, ComponentDefinition] = {
    d.key: d
    for d in (
        _define("button", "Button", 100, 40, default_children="Click me"),
        _define("input", "Input", 200, 40, default_props={"placeholder": "Enter text..."}),
        _define(
            "card",
            "Card",
            300,
            180,
            default_children=(
                "<CardHeader>\n"
                "  <CardTitle>Card Title</CardTitle>\n"
                "  <CardDescription>Card description</CardDescription>\n"
                "</CardHeader>\n"
                "<CardContent>\n"
                "  <p>Content goes here.</p>\n"
                "</CardContent>"
            ),
            sub_components=("CardHeader", "CardTitle", "CardDescription", "CardContent", "CardFooter"),
        ),
        _define("badge", "Badge", 80, 24, default_children="Badge"),
        _define("checkbox", "Checkbox", 120, 24, default_props={"id": "checkbox"}),
        _define("switch", "Switch", 44, 24),
        _define(
            "tabs",
            "Tabs",
            200,
            40,
            default_props={"defaultValue": "tab1"},
            default_children=(
                "<TabsList>\n"
                '  <TabsTrigger value="tab1">Tab 1</TabsTrigger>\n'
                '  <TabsTrigger value="tab2">Tab 2</TabsTrigger>\n'
                "</TabsList>\n"
                '<TabsContent value="tab1">Content for tab 1</TabsContent>\n'
                '<TabsContent value="tab2">Content for tab 2</TabsContent>'
            ),
            sub_components=("TabsList", "TabsTrigger", "TabsContent"),
        ),
        _define(
            "avatar",
            "Avatar",
            40,
            40,
            default_children="<AvatarFallback>JD</AvatarFallback>",
            sub_components=("AvatarImage", "AvatarFallback"),
        ),
        _define("slider", "Slider", 200, 40, default_props={"value": 50, "max": 100, "step": 1}),
        _define("separator", "Separator", 200, 20),
        _define("label", "Label", 80, 20, default_children="Label text"),
        _define(
            "select",
            "Select",
            180,
            40,
            default_props={"defaultValue": ""},
            default_children=(
                '<SelectOption value="">Select...</SelectOption>\n'
                '<SelectOption value="option1">Option 1</SelectOption>\n'
                '<SelectOption value="option2">Option 2</SelectOption>'
            ),
            sub_components=("SelectOption",),
        ),
        _define(
            "dialog",
            "Dialog",
            300,
            120,
            default_children=(
                "<DialogTrigger asChild>\n"
                "  <Button>Open Dialog</Button>\n"
                "</DialogTrigger>\n"
                "<DialogContent>\n"
                "  <DialogHeader>\n"
                "    <DialogTitle>Dialog Title</DialogTitle>\n"
                "    <DialogDescription>Dialog description text.</DialogDescription>\n"
                "  </DialogHeader>\n"
                "</DialogContent>"
            ),
            sub_components=("DialogTrigger", "DialogContent", "DialogHeader", "DialogTitle", "DialogDescription"),
        ),
        _define(
            "accordion",
            "Accordion",
            250,
            100,
            default_props={"type": "single", "collapsible": True},
            default_children=(
                '<AccordionItem value="item-1">\n'
                "  <AccordionTrigger>Section 1</AccordionTrigger>\n"
                "  <AccordionContent>Content for section 1</AccordionContent>\n"
                "</AccordionItem>"
            ),
            sub_components=("AccordionItem", "AccordionTrigger", "AccordionContent"),
        ),
        _define("textarea", "Textarea", 200, 80, default_props={"placeholder": "Enter your message..."}),
        _define("progress", "Progress", 200, 16, default_props={"value": 60}),
        _define(
            "alert",
            "Alert",
            300,
            80,
            default_children=(
                "<AlertTitle>Heads up!</AlertTitle>\n"
                "<AlertDescription>You can add components to your app using the CLI.</AlertDescription>"
            ),
            sub_components=("AlertTitle", "AlertDescription"),
        ),
        _define("skeleton", "Skeleton", 200, 20, default_props={"className": "h-4 w-[200px]"}),
        _define(
            "radio-group",
            "RadioGroup",
            150,
            80,
            default_props={"defaultValue": "option-1"},
            default_children=(
                '<div className="flex items-center space-x-2">\n'
                '  <RadioGroupItem value="option-1" id="r1" />\n'
                '  <Label htmlFor="r1">Option 1</Label>\n'
                "</div>\n"
                '<div className="flex items-center space-x-2">\n'
                '  <RadioGroupItem value="option-2" id="r2" />\n'
                '  <Label htmlFor="r2">Option 2</Label>\n'
                "</div>"
            ),
            sub_components=("RadioGroupItem",),
        ),
        _define("toggle", "Toggle", 80, 40, default_props={"aria-label": "Toggle"}, default_children="Toggle"),
        _define(
            "table",
            "Table",
            350,
            150,
            default_children=(
                "<TableHeader>\n"
                "  <TableRow>\n"
                "    <TableHead>Name</TableHead>\n"
                "    <TableHead>Status</TableHead>\n"
                "  </TableRow>\n"
                "</TableHeader>\n"
                "<TableBody>\n"
                "  <TableRow>\n"
                "    <TableCell>Item 1</TableCell>\n"
                "    <TableCell>Active</TableCell>\n"
                "  </TableRow>\n"
                "</TableBody>"
            ),
            sub_components=("TableHeader", "TableBody", "TableRow", "TableHead", "TableCell"),
        ),
        _define(
            "popover",
            "Popover",
            100,
            40,
            default_children=(
                "<PopoverTrigger asChild>\n"
                '  <Button variant="outline">Open popover</Button>\n'
                "</PopoverTrigger>\n"
                "<PopoverContent>Set the dimensions for the layer.</PopoverContent>"
            ),
            sub_components=("PopoverTrigger", "PopoverContent"),
        ),
    )
}

_BY_COMPONENT_NAME = {d.component_name: d for d in KNOWN_COMPONENTS.values()}


def get_component_definition(component_type: str) -> ComponentDefinition | None:
    return KNOWN_COMPONENTS.get(display_name_to_key(component_type))


def definition_for_tag(tag: str) -> ComponentDefinition | None:
    return _BY_COMPONENT_NAME.get(tag)


def generic_definition(component_type: str) -> ComponentDefinition:
    """Placeholder definition for a component the registry does not know."""
    key = display_name_to_key(component_type)
    return ComponentDefinition(key=key, component_name=pascal_case(component_type), default_width=150, default_height=60)


def build_component_registry(paths: Iterable[str]) -> list[ComponentDefinition]:
    """Components present under ``/components/ui/`` of a project, sorted by display name."""
    registry: list[ComponentDefinition] = []
    for path in paths:
        match = _UI_FILE_PATTERN.match(path)
        if match is None:
            continue
        key = match.group(1)
        registry.append(KNOWN_COMPONENTS.get(key) or generic_definition(key))
    return sorted(registry, key=lambda d: d.display_name)
