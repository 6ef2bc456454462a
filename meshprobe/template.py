"""Rendering manifest templates with helper functions and per-architecture images.

Templates use Jinja2 syntax. Besides the values passed in, every template can
call ``toYaml(value)``, ``indent(spaces, text)``, ``until(n)`` and
``image(name)``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jinja2
import yaml

__all__ = [
    "TemplateError",
    "ImageCatalog",
    "run",
    "indent",
    "to_yaml",
    "until",
    "add_line_numbers",
]


class TemplateError(Exception):
    """A template could not be parsed or rendered, or an image was not found."""


@dataclass(frozen=True)
class ImageCatalog:
    """Maps an image name to the container image for each architecture."""

    images: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    source: str = "images.yaml"

    @classmethod
    def load(cls, path: str | Path) -> ImageCatalog:
        """Read a catalog from a YAML file of ``image -> architecture -> container image``."""
        file = Path(path)
        try:
            text = file.read_text()
        except OSError as exc:
            raise TemplateError(f"couldn't read file {file}: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise TemplateError(f"couldn't parse file {file}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict) or not all(
            archs is None or isinstance(archs, dict) for archs in data.values()
        ):
            raise TemplateError(
                f"couldn't parse file {file}: expected a mapping of image names to architectures"
            )
        images = {
            str(name): {str(arch): str(image) for arch, image in (archs or {}).items()}
            for name, archs in data.items()
        }
        return cls(images, str(file))

    def image(self, name: str, arch: str) -> str:
        """Return the container image of ``name`` for the architecture ``arch``."""
        try:
            per_arch = self.images[name]
        except KeyError:
            raise TemplateError(f'could not find image "{name}" in {self.source}') from None
        try:
            return per_arch[arch]
        except KeyError:
            raise TemplateError(
                f'could not find image "{name}" for architecture "{arch}" in {self.source}'
            ) from None


def indent(spaces: int, source: str) -> str:
    """Prefix every line but the first with ``spaces`` spaces."""
    prefix = " " * spaces
    first, *rest = source.split("\n")
    return "\n".join([first, *(prefix + line for line in rest)])


def to_yaml(value: Any) -> str:
    """Serialise ``value`` as a YAML document with sorted keys."""
    try:
        text = yaml.safe_dump(value, default_flow_style=False, sort_keys=True, allow_unicode=True)
    except yaml.YAMLError as exc:
        raise TemplateError(f"Unable to marshal {value!r}") from exc
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    return text


def until(n: int) -> list[int]:
    """Return the numbers 0 to ``n - 1``."""
    if n < 0:
        raise ValueError(f"until needs a non-negative count: {n}")
    return list(range(n))


def add_line_numbers(text: str) -> str:
    """Prefix each line with its number, right-aligned in three columns."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return "".join(
        f"{number:3d}: {line.removesuffix(chr(13))}\n" for number, line in enumerate(lines, start=1)
    )


_ENV = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)
_ENV.globals.update(toYaml=to_yaml, to_yaml=to_yaml, indent=indent, until=until)


def _context(values: Any) -> dict[str, Any]:
    if values is None:
        return {}
    if isinstance(values, Mapping):
        return {str(key): value for key, value in values.items()}
    if dataclasses.is_dataclass(values) and not isinstance(values, type):
        return {f.name: getattr(values, f.name) for f in dataclasses.fields(values)}
    try:
        attributes = vars(values)
    except TypeError:
        raise TemplateError(f"cannot use {type(values).__name__} as template values") from None
    return {key: value for key, value in attributes.items() if not key.startswith("_")}


def run(
    template: str,
    values: Any = None,
    images: ImageCatalog | None = None,
    arch: str | None = None,
) -> str:
    """Render ``template`` with ``values``, a mapping or an object whose fields are used.

    ``images`` and ``arch`` back the ``image(name)`` function. Raises
    :class:`TemplateError` if the template cannot be parsed or rendered.
    """

    def _image(name: str) -> str:
        if images is None:
            raise TemplateError(f'no image catalog to look up image "{name}"')
        if arch is None:
            raise TemplateError(f'no architecture given to look up image "{name}"')
        return images.image(name, arch)

    try:
        compiled = _ENV.from_string(template, globals={"image": _image})
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateError(
            f"could not execute template: {exc}:\n{add_line_numbers(template)}"
        ) from exc
    context = _context(values)
    try:
        return compiled.render(context)
    except TemplateError:
        raise
    except Exception as exc:
        raise TemplateError(f"could not execute template: {exc}") from exc