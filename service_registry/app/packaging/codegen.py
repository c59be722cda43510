"""
Client stub generation collaborators.

The package builder depends on two duck-typed collaborators:

- a generator with ``generate(operation, base_url) -> str`` producing the
  source of one client function, and
- an eraser with ``strip(source) -> str`` removing static type annotations
  while leaving runtime behavior untouched.

The defaults below emit plain CommonJS, so the default eraser has nothing to
remove. Each generated stub assigns a named function expression onto
``exports`` under its raw operation id. Ids are unique within a description
while derived identifiers are not (``list-items`` and ``listItems`` both
become ``listItems``), so stubs for any set of operations concatenate into
one module without overwriting each other.
"""

import json
import re
from typing import List

from ..domain.models import Operation


JS_RESERVED = frozenset({
    "break", "case", "catch", "class", "const", "continue", "debugger", "default",
    "delete", "do", "else", "export", "extends", "finally", "for", "function", "if",
    "import", "in", "instanceof", "new", "return", "super", "switch", "this", "throw",
    "try", "typeof", "var", "void", "while", "with", "yield", "let", "static", "enum",
    "await", "null", "true", "false",
})

_WORD = re.compile(r"[A-Za-z0-9]+")
_PATH_PARAM = re.compile(r"\{([^}]+)\}")


def to_identifier(operation_id: str) -> str:
    """Derive a camelCase JavaScript identifier from an operation id."""
    words = _WORD.findall(operation_id)
    if not words:
        return "_operation"
    identifier = words[0][:1].lower() + words[0][1:] + "".join(w[:1].upper() + w[1:] for w in words[1:])
    if identifier[0].isdigit() or identifier in JS_RESERVED:
        identifier = f"_{identifier}"
    return identifier


def _js(value) -> str:
    """JSON string literals are valid JavaScript string literals."""
    return json.dumps(value)


def _comment(text: str) -> str:
    return text.replace("*/", "* /").strip()


class JavaScriptStubGenerator:
    """Generates a ``fetch``-based client function for one operation."""

    def generate(self, operation: Operation, base_url: str) -> str:
        name = to_identifier(operation.operation_id)
        if operation.servers and operation.servers[0].get("url"):
            base_url = str(operation.servers[0]["url"])
        base_url = base_url.rstrip("/")

        lines: List[str] = ["/**"]
        for text in (operation.summary, operation.description):
            if text:
                lines.extend(f" * {_comment(line)}" for line in str(text).splitlines())
        lines.append(f" * {operation.method.upper()} {_comment(operation.path)}")
        lines.append(" */")
        lines.append(f"exports[{_js(operation.operation_id)}] = async function {name}(params = {{}}, init = {{}}) {{")
        lines.append(f"  let path = {_js(operation.path)};")

        declared = set()
        for parameter in operation.parameters:
            declared.add(parameter.name)
            key = _js(parameter.name)
            if parameter.location == "path":
                lines.append(
                    f"  path = path.split({_js('{' + parameter.name + '}')})"
                    f".join(encodeURIComponent(String(params[{key}])));"
                )
        for placeholder in _PATH_PARAM.findall(operation.path):
            if placeholder not in declared:
                lines.append(
                    f"  path = path.split({_js('{' + placeholder + '}')})"
                    f".join(encodeURIComponent(String(params[{_js(placeholder)}])));"
                )

        lines.append(f"  const url = new URL({_js(base_url)} + path);")
        lines.append("  const headers = Object.assign({}, init.headers);")
        for parameter in operation.parameters:
            key = _js(parameter.name)
            if parameter.location == "query":
                lines.append(
                    f"  if (params[{key}] !== undefined) url.searchParams.set({key}, String(params[{key}]));"
                )
            elif parameter.location == "header":
                lines.append(f"  if (params[{key}] !== undefined) headers[{key}] = String(params[{key}]);")

        lines.append(f"  const request = Object.assign({{}}, init, {{ method: {_js(operation.method.upper())}, headers }});")
        if operation.request_body is not None:
            lines.append("  if (params.body !== undefined) {")
            lines.append('    headers["Content-Type"] = headers["Content-Type"] || "application/json";')
            lines.append("    request.body = JSON.stringify(params.body);")
            lines.append("  }")
        lines.append("  const response = await fetch(url, request);")
        lines.append("  const text = await response.text();")
        lines.append("  let data = text;")
        lines.append("  try { data = text ? JSON.parse(text) : null; } catch (e) { /* not JSON */ }")
        lines.append("  if (!response.ok) {")
        lines.append(f"    const error = new Error({_js(operation.operation_id + ' failed: ')} + response.status);")
        lines.append("    error.status = response.status;")
        lines.append("    error.data = data;")
        lines.append("    throw error;")
        lines.append("  }")
        lines.append("  return data;")
        lines.append("};")
        return "\n".join(lines) + "\n"


class PassthroughAnnotationEraser:
    """Eraser for generators that already emit plain JavaScript."""

    def strip(self, source: str) -> str:
        return source
