"""Element tree for the users panel and its HTML rendering."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from markupsafe import Markup, escape

from .models import FORM_FIELDS, User

TABLE_BODY_ID = "users-table-body"
SEARCH_INPUT_ID = "search-input"
ADD_USER_BUTTON_ID = "add-user-button"
ADD_USER_MODAL_ID = "add-user-modal"
ADD_USER_FORM_ID = "add-user-form"
SEARCH_FORM_ID = "search-form"
CLOSE_BUTTON_CLASS = "close-btn"
TABLE_HEADERS = ("ID", "Display Name", "User Principal Name", "First Name", "Last Name", "Roles", "Actions")

_VOID_TAGS = {"input", "br", "hr", "img", "meta", "link"}

Handler = Callable[[Any], Any]
Child = Union["Element", str]


@dataclass
class Event:
    """Minimal DOM-style event passed to element handlers."""

    type: str
    target: Optional["Element"] = None
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class Element:
    """A node of the panel's element tree.

    Text children are stored as plain strings and escaped when rendered, so
    user-supplied values never become markup.
    """

    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List[Child] = field(default_factory=list)
    handlers: Dict[str, Handler] = field(default_factory=dict, repr=False)

    @property
    def id(self) -> Optional[str]:
        return self.attrs.get("id")

    @property
    def classes(self) -> List[str]:
        return self.attrs.get("class", "").split()

    @property
    def text(self) -> str:
        parts: List[str] = []
        for child in self.children:
            parts.append(child.text if isinstance(child, Element) else child)
        return "".join(parts)

    @property
    def value(self) -> str:
        return self.attrs.get("value", "")

    @value.setter
    def value(self, new_value: str) -> None:
        self.attrs["value"] = str(new_value)

    def append(self, child: Child) -> Child:
        self.children.append(child)
        return child

    def clear(self) -> None:
        self.children = []

    def iter(self) -> Iterable["Element"]:
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter()

    def find(self, element_id: str) -> Optional["Element"]:
        for node in self.iter():
            if node.id == element_id:
                return node
        return None

    def find_class(self, class_name: str) -> Optional["Element"]:
        for node in self.iter():
            if class_name in node.classes:
                return node
        return None

    def on(self, event_type: str, handler: Handler) -> None:
        self.handlers[event_type] = handler

    def dispatch(self, event: Union[Event, str]) -> Event:
        if isinstance(event, str):
            event = Event(type=event)
        if event.target is None:
            event.target = self
        handler = self.handlers.get(event.type)
        if handler is not None:
            handler(event)
        return event

    def render(self) -> Markup:
        attrs = "".join(
            f' {escape(name)}="{escape(value)}"' for name, value in self.attrs.items()
        )
        if self.tag in _VOID_TAGS:
            return Markup(f"<{self.tag}{attrs}>")
        inner = "".join(
            str(child.render()) if isinstance(child, Element) else str(escape(child))
            for child in self.children
        )
        return Markup(f"<{self.tag}{attrs}>{inner}</{self.tag}>")


def el(tag: str, *children: Child, **attrs: Any) -> Element:
    """Build an element; ``class_`` and ``for_`` map to the reserved attribute names."""

    cleaned: Dict[str, str] = {}
    for key, value in attrs.items():
        if value is None:
            continue
        name = key.rstrip("_").replace("_", "-")
        cleaned[name] = str(value)
    return Element(tag=tag, attrs=cleaned, children=list(children))


def build_user_row(user: User, delete_action: Optional[str] = None) -> Element:
    """One table row: six text cells and a delete control bound to ``user.id``.

    With ``delete_action`` the control is a form leading to that URL, where the
    server-rendered page asks for confirmation before deleting.
    """

    row = el("tr", data_user_id=user.id)
    for value in user.cells:
        row.append(el("td", value))
    button = el(
        "button",
        "Delete",
        type="submit" if delete_action else "button",
        class_="delete-btn",
        data_user_id=user.id,
    )
    if delete_action:
        control: Element = el("form", button, method="get", action=delete_action, class_="delete-form")
    else:
        control = button
    row.append(el("td", control))
    return row


class PanelView:
    """The DOM surface the controller works against."""

    def __init__(self, search_value: str = "") -> None:
        self.table_body = el("tbody", id=TABLE_BODY_ID)
        self.search_input = el(
            "input",
            type="text",
            id=SEARCH_INPUT_ID,
            name="q",
            form=SEARCH_FORM_ID,
            placeholder="Search by display name",
            value=search_value,
        )
        self.add_user_button = el(
            "button", "Add User", type="submit", id=ADD_USER_BUTTON_ID, form=SEARCH_FORM_ID, name="modal", value="open"
        )
        self.close_button = el("a", "×", href="/users", class_=CLOSE_BUTTON_CLASS)
        self.form = self._build_form()
        self.modal = el(
            "div",
            el("div", self.close_button, el("h2", "Add User"), self.form, class_="modal-content"),
            id=ADD_USER_MODAL_ID,
            class_="modal",
            style="display: none",
        )
        header = el("tr", *[el("th", title) for title in TABLE_HEADERS])
        self.table = el("table", el("thead", header), self.table_body, class_="users-table")
        self.root = el("div", self.search_input, self.add_user_button, self.table, self.modal, class_="users-panel")

    @staticmethod
    def _build_form() -> Element:
        form = el("form", id=ADD_USER_FORM_ID, method="post", action="/users/add")
        for name in FORM_FIELDS:
            form.append(el("label", name, for_=f"field-{name}"))
            form.append(el("input", type="text", id=f"field-{name}", name=name, value=""))
        form.append(el("button", "Save", type="submit"))
        return form

    # ------------------------------------------------------------------ #
    # Lookup                                                             #
    # ------------------------------------------------------------------ #
    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return self.root.find(element_id)

    def query_class(self, class_name: str) -> Optional[Element]:
        return self.root.find_class(class_name)

    # ------------------------------------------------------------------ #
    # Table                                                              #
    # ------------------------------------------------------------------ #
    def render_users(
        self,
        users: Iterable[User],
        delete_action: Optional[Callable[[str], str]] = None,
        on_delete: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.table_body.clear()
        for user in users:
            action = delete_action(user.id) if delete_action else None
            row = self.table_body.append(build_user_row(user, action))
            if on_delete is not None:
                control = row.find_class("delete-btn")
                control.on("click", lambda _event, user_id=user.id: on_delete(user_id))

    @property
    def rows(self) -> List[Element]:
        return [child for child in self.table_body.children if isinstance(child, Element)]

    def table_rows(self) -> List[List[str]]:
        """Text of the six data cells of each rendered row."""

        result: List[List[str]] = []
        for row in self.rows:
            cells = [cell for cell in row.children if isinstance(cell, Element)]
            result.append([cell.text for cell in cells[:-1]])
        return result

    def delete_controls(self) -> List[Element]:
        return [node for node in self.table_body.iter() if "delete-btn" in node.classes]

    # ------------------------------------------------------------------ #
    # Modal and form                                                     #
    # ------------------------------------------------------------------ #
    @property
    def modal_visible(self) -> bool:
        return self.modal.attrs.get("style") == "display: block"

    def show_modal(self) -> None:
        self.modal.attrs["style"] = "display: block"

    def hide_modal(self) -> None:
        self.modal.attrs["style"] = "display: none"

    def form_inputs(self) -> List[Element]:
        return [node for node in self.form.iter() if node.tag == "input" and node.attrs.get("name")]

    def set_form_values(self, values: Dict[str, str]) -> None:
        for node in self.form_inputs():
            name = node.attrs["name"]
            if name in values:
                node.value = values[name]

    def form_entries(self) -> List[tuple[str, str]]:
        return [(node.attrs["name"], node.value) for node in self.form_inputs()]

    def render(self) -> Markup:
        return self.root.render()


__all__ = [
    "ADD_USER_BUTTON_ID",
    "ADD_USER_FORM_ID",
    "ADD_USER_MODAL_ID",
    "CLOSE_BUTTON_CLASS",
    "Element",
    "Event",
    "PanelView",
    "SEARCH_INPUT_ID",
    "TABLE_BODY_ID",
    "build_user_row",
    "el",
]
