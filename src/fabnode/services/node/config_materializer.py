from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from string import Template

from fabnode.services.crypto.pki import write_atomic
from fabnode.services.errors import TemplateRenderError

_log = logging.getLogger("fabnode.node.config")

DEFAULT_TEMPLATE = "core.yaml.tmpl"
FILE_SYSTEM_PATH_VAR = "file_system_path"


def load_template(name: str = DEFAULT_TEMPLATE) -> str:
    """Read a template shipped in :mod:`fabnode.templates`."""

    return resources.files("fabnode.templates").joinpath(name).read_text(encoding="utf-8")


def _quoted_scalar_body(value: str) -> str:
    # JSON string escapes are a subset of YAML double-quoted escapes
    return json.dumps(value, ensure_ascii=False)[1:-1]


class ConfigMaterializer:
    """Renders the peer runtime configuration from an injected template."""

    def __init__(self, template: str | None = None) -> None:
        self._template = Template(load_template() if template is None else template)

    def render(self, file_system_path: Path | str) -> str:
        """Substitute the data path, escaped for a YAML double-quoted scalar."""

        value = _quoted_scalar_body(Path(file_system_path).as_posix())
        try:
            return self._template.substitute({FILE_SYSTEM_PATH_VAR: value})
        except (KeyError, ValueError) as exc:
            raise TemplateRenderError(f"malformed runtime config template: {exc}") from exc

    def write(self, destination: Path, file_system_path: Path | str) -> Path:
        content = self.render(file_system_path)
        write_atomic(destination, content.encode("utf-8"))
        _log.debug("rendered runtime config path=%s", destination)
        return destination


_DEFAULT: ConfigMaterializer | None = None


def get_config_materializer() -> ConfigMaterializer:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = ConfigMaterializer()
    return _DEFAULT
