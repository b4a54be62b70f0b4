"""Form-input bindings consumed by the layout engine.

``parse_forms`` walks a parsed document once and returns one ``Form`` per
``<form>`` element in document order. Each ``FormInput`` carries a name, a
current value and, for list-like inputs, the possible values and their
display names. ``Form.click`` turns the current values into a ``Request``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

import requests
from bs4 import BeautifulSoup, Tag

from .fetch import Request

if TYPE_CHECKING:
    from .elements import FormControl

logger = logging.getLogger(__name__)

CONTROL_TAGS = ("input", "select", "textarea", "button")
SUBMIT_TYPES = ("submit", "image")
MULTIPART = "multipart/form-data"


@dataclass(eq=False)
class FormInput:
    """One submittable input of a form.

    Radio buttons sharing a name form a single input whose possible values
    are the individual buttons' values. Checkboxes and the options of a
    ``<select multiple>`` are separate inputs with possible values
    ``[None, value]``.
    """

    type: str
    name: str | None
    value: str | None = None
    possible_values: list[str | None] = field(default_factory=list)
    value_names: list[str] = field(default_factory=list)
    label: str = ""
    disabled: bool = False
    multiple: bool = False

    def name_for_value(self, value: str | None) -> str | None:
        """Display name of ``value`` (the option text for selects)."""
        for idx, candidate in enumerate(self.possible_values):
            if candidate == value and idx < len(self.value_names):
                return self.value_names[idx]
        return value

    def value_for_name(self, name: str) -> str | None:
        """Inverse of ``name_for_value``; accepts raw values too."""
        for idx, candidate in enumerate(self.value_names):
            if candidate == name and idx < len(self.possible_values):
                return self.possible_values[idx]
        if name in self.possible_values:
            return name
        raise ValueError(f"Illegal value {name!r} for input {self.name!r}")

    def set_by_name(self, name: str) -> None:
        self.value = self.value_for_name(name)

    @property
    def is_list(self) -> bool:
        return self.type in ("radio", "checkbox", "option")

    def form_pairs(self) -> list[tuple[str, str]]:
        if self.disabled or not self.name or self.value is None:
            return []
        if self.type in SUBMIT_TYPES:
            return []
        return [(self.name, self.value)]


@dataclass(eq=False)
class Form:
    """A form's inputs plus the interactive controls rendered for it."""

    action: str
    method: str = "GET"
    enctype: str = "application/x-www-form-urlencoded"
    inputs: list[FormInput] = field(default_factory=list)
    controls: list[FormControl] = field(default_factory=list)
    detached: bool = False

    def find_inputs(self, name: str | None, type: str | None = None) -> list[FormInput]:
        return [
            candidate
            for candidate in self.inputs
            if candidate.name == name and (type is None or candidate.type == type)
        ]

    def find_input(self, name: str | None, type: str | None = None, index: int = 1) -> FormInput | None:
        """Return the ``index``-th (1-based) input with this name and type."""
        matches = self.find_inputs(name, type)
        if 0 < index <= len(matches):
            return matches[index - 1]
        return None

    def find_list_input(self, name: str | None, type: str, value: str | None) -> FormInput | None:
        """Return the list input of ``type`` that can take ``value``."""
        matches = self.find_inputs(name, type)
        if value is None:
            return matches[0] if matches else None
        for candidate in matches:
            if value in candidate.possible_values:
                return candidate
        return None

    def sync_controls(self, page) -> None:
        """Push every rendered control value back into its bound input."""
        for control in self.controls:
            control.sync(page)

    def form_pairs(self, clicked: FormInput | None = None) -> list[tuple[str, str]]:
        pairs: list[tuple[str, str]] = []
        for candidate in self.inputs:
            if candidate is clicked and clicked.name and not clicked.disabled:
                if clicked.type == "image":
                    pairs.extend([(f"{clicked.name}.x", "1"), (f"{clicked.name}.y", "1")])
                else:
                    pairs.append((clicked.name, clicked.value or ""))
                continue
            pairs.extend(candidate.form_pairs())
        return pairs

    def click(self, clicked: FormInput | None = None) -> Request:
        """Build the submission request, as if ``clicked`` was pressed."""
        pairs = self.form_pairs(clicked)
        method = self.method.upper()
        if method != "POST":
            parts = urlsplit(self.action)
            uri = urlunsplit(parts._replace(query=urlencode(pairs), fragment=""))
            return Request(uri)
        if self.enctype.lower() == MULTIPART:
            return self._multipart_request(pairs)
        body = urlencode(pairs).encode("utf-8")
        return Request(
            self.action,
            "POST",
            body,
            {"Content-Type": "application/x-www-form-urlencoded"},
        )

    def _multipart_request(self, pairs: list[tuple[str, str]]) -> Request:
        files: list[tuple[str, tuple[str | None, bytes | str]]] = []
        file_names = {candidate.name for candidate in self.inputs if candidate.type == "file"}
        for name, value in pairs:
            if name in file_names:
                path = Path(value).expanduser()
                try:
                    content = path.read_bytes()
                except OSError as exc:
                    logger.warning("Failed to read %s for upload: %s", path, exc)
                    content = b""
                files.append((name, (os.path.basename(value), content)))
            else:
                files.append((name, (None, value)))
        if not files:
            files.append(("", (None, "")))
        prepared = requests.Request("POST", self.action, files=files).prepare()
        headers = {"Content-Type": prepared.headers["Content-Type"]}
        body = prepared.body if isinstance(prepared.body, bytes) else (prepared.body or "").encode("utf-8")
        return Request(self.action, "POST", body, headers)


def _option_value(option: Tag) -> tuple[str, str]:
    text = " ".join(option.get_text().split())
    value = option.get("value")
    return (text if value is None else value), text


def _input_from_tag(node: Tag) -> FormInput | None:
    disabled = node.has_attr("disabled")
    if node.name == "textarea":
        value = node.get_text()
        if value.startswith("\n"):
            value = value[1:]
        return FormInput("textarea", node.get("name"), value, disabled=disabled)
    if node.name == "button":
        button_type = (node.get("type") or "submit").lower()
        if button_type != "submit":
            return None
        label = " ".join(node.get_text().split()) or "Submit"
        return FormInput("submit", node.get("name"), node.get("value", ""), label=label, disabled=disabled)
    input_type = (node.get("type") or "text").lower()
    name = node.get("name")
    if input_type in ("reset", "button"):
        return None
    if input_type == "checkbox":
        on_value = node.get("value") or "on"
        checked = node.has_attr("checked")
        return FormInput(
            "checkbox",
            name,
            on_value if checked else None,
            [None, on_value],
            ["off", on_value],
            disabled=disabled,
        )
    if input_type in SUBMIT_TYPES:
        label = " ".join(str(node.get("value") or "").split()) or "Submit"
        return FormInput(input_type, name, node.get("value", ""), label=label, disabled=disabled)
    if input_type not in ("password", "hidden", "file"):
        input_type = "text"
    value = "" if input_type == "file" else node.get("value", "")
    return FormInput(input_type, name, value, disabled=disabled)


def _form_from_tag(form_tag: Tag, base: str) -> Form:
    action = urljoin(base, form_tag.get("action") or "")
    form = Form(
        action=action or base,
        method=(form_tag.get("method") or "GET").upper(),
        enctype=(form_tag.get("enctype") or "application/x-www-form-urlencoded").lower(),
    )
    _add_inputs(form, form_tag.find_all(CONTROL_TAGS))
    return form


def _add_inputs(form: Form, nodes: list[Tag]) -> None:
    radios: dict[str | None, FormInput] = {}
    for node in nodes:
        if node.name == "select":
            options = node.find_all("option")
            disabled = node.has_attr("disabled")
            if node.has_attr("multiple"):
                for option in options:
                    value, text = _option_value(option)
                    form.inputs.append(
                        FormInput(
                            "option",
                            node.get("name"),
                            value if option.has_attr("selected") else None,
                            [None, value],
                            ["off", text],
                            disabled=disabled,
                            multiple=True,
                        )
                    )
                continue
            values = [_option_value(option) for option in options]
            selected = next(
                (_option_value(option)[0] for option in options if option.has_attr("selected")),
                values[0][0] if values else None,
            )
            form.inputs.append(
                FormInput(
                    "option",
                    node.get("name"),
                    selected,
                    [value for value, _ in values],
                    [text for _, text in values],
                    disabled=disabled,
                )
            )
            continue
        if node.name == "input" and (node.get("type") or "").lower() == "radio":
            name = node.get("name")
            value = node.get("value") or "on"
            group = radios.get(name)
            if group is None:
                group = FormInput("radio", name, None, disabled=node.has_attr("disabled"))
                radios[name] = group
                form.inputs.append(group)
            group.possible_values.append(value)
            group.value_names.append(value)
            if node.has_attr("checked"):
                group.value = value
            continue
        control = _input_from_tag(node)
        if control is not None:
            form.inputs.append(control)


def parse_forms(document: BeautifulSoup | Tag, base: str) -> list[Form]:
    """Return the forms of ``document`` in document order.

    Controls outside any ``<form>`` are collected into one trailing detached
    form: they render and hold values but never submit.
    """
    forms = [_form_from_tag(form_tag, base) for form_tag in document.find_all("form")]
    loose = [node for node in document.find_all(CONTROL_TAGS) if node.find_parent("form") is None]
    if loose:
        detached = Form(action=base, detached=True)
        _add_inputs(detached, loose)
        forms.append(detached)
    return forms
