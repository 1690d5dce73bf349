"""Sandboxed Jinja2 rendering for changelogs and pull request bodies.

Templates ship inside the package (``ticketflow/rendering/templates``).
Rendering uses Jinja2's SandboxedEnvironment with StrictUndefined so a
template referring to a missing variable fails instead of producing an
empty section.

Example:
    >>> engine = TemplateEngine()
    >>> notes = engine.render("changelog.md.j2", {"name": "1.2.0", "sections": []})
"""

from pathlib import Path
from typing import Any, cast

from jinja2 import FileSystemLoader, StrictUndefined, TemplateNotFound
from jinja2.sandbox import SandboxedEnvironment

CHANGELOG_TEMPLATE = "changelog.md.j2"
PULL_REQUEST_TEMPLATE = "pull_request.md.j2"


class TemplateEngine:
    """Jinja2 environment bound to a template directory.

    Attributes:
        template_dir: Resolved path to the template directory.
        env: The SandboxedEnvironment instance.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialize the engine.

        Args:
            template_dir: Root directory for templates. Defaults to the
                templates bundled with the package.

        Raises:
            ValueError: If template_dir doesn't exist or isn't a directory.
        """
        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"

        self.template_dir = template_dir.resolve()
        if not self.template_dir.is_dir():
            raise ValueError(f"Template directory does not exist: {self.template_dir}")

        self.env = SandboxedEnvironment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def validate_template_path(self, template_path: str) -> Path:
        """Resolve a template path, refusing paths outside template_dir.

        Raises:
            ValueError: If the path escapes the template directory.
            TemplateNotFound: If the template file doesn't exist.
        """
        requested_path = (self.template_dir / template_path).resolve()
        try:
            requested_path.relative_to(self.template_dir)
        except ValueError as e:
            raise ValueError(f"Template path escapes template directory: {template_path}") from e

        if not requested_path.exists():
            raise TemplateNotFound(template_path)
        return requested_path

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist.
            jinja2.UndefinedError: If the template uses an undefined variable.
        """
        self.validate_template_path(template_path)
        template = self.env.get_template(template_path)
        return cast(str, template.render(**context)).strip() + "\n"
