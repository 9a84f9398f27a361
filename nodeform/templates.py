"""Two-stage rendering of node pool profiles.

A profile directory holds a user data template and a stack template.
The user data is rendered, converted and published first; the stack
template then receives a base64 skeleton pointing at the published
payload as ``UserData``.

Templates are Jinja2 with ``StrictUndefined``: referencing a name, an
attribute or a ``Values`` key that does not exist fails the render
instead of producing an empty string.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2
from loguru import logger

from nodeform.bootstrap import encode_user_data
from nodeform.constants import STACK_FILE_NAME, USER_DATA_FILE_NAME
from nodeform.exceptions import ConfigurationError, TemplateError
from nodeform.models import Cluster, NodePool, Values
from nodeform.protocols import BootstrapConverter
from nodeform.publisher import ContentAddressedPublisher

log = logger.bind(component="templates")

_env = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def render_template(path: Path, context: dict[str, Any]) -> str:
    """Render the template file at ``path`` with ``context``.

    Raises:
        TemplateError: The file is unreadable, does not parse, or
            references an undefined key.
    """
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateError(path, e.strerror or str(e)) from e

    try:
        return _env.from_string(source).render(context)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateError(path, f"line {e.lineno}: {e.message}") from e
    except jinja2.TemplateError as e:
        raise TemplateError(path, str(e)) from e


@dataclass(frozen=True, slots=True)
class RenderedUserData:
    """User data of one provisioning attempt; never persisted."""

    rendered: str
    payload: bytes
    uri: str
    encoded: str


class NodePoolTemplates:
    """Renders stack documents for node pools of a profile directory.

    Args:
        config_dir: Base directory holding one directory per profile.
        bucket: Bucket receiving the converted user data.
        converter: Turns rendered user data into the bootstrap payload.
        publisher: Content-addressed publisher for the payload.
    """

    def __init__(
        self,
        config_dir: Path | str,
        bucket: str,
        converter: BootstrapConverter,
        publisher: ContentAddressedPublisher,
    ) -> None:
        self.config_dir = Path(config_dir)
        self.bucket = bucket
        self._converter = converter
        self._publisher = publisher

    def profile_dir(self, node_pool: NodePool) -> Path:
        path = self.config_dir / node_pool.profile
        if not node_pool.profile or not path.is_dir():
            raise ConfigurationError(
                f"failed to find configuration for node pool profile '{node_pool.profile}'"
            )
        return path

    def prepare_user_data(self, cluster: Cluster, node_pool: NodePool, values: Values) -> RenderedUserData:
        """Render, convert and publish the user data of a node pool."""
        path = self.profile_dir(node_pool) / USER_DATA_FILE_NAME
        rendered = render_template(
            path, {"Cluster": cluster, "NodePool": node_pool, "Values": values}
        )

        try:
            payload = self._converter.convert(rendered)
        except Exception as e:
            raise TemplateError(path, f"failed to parse config: {e}") from e

        uri = self._publisher.publish(self.bucket, payload)
        return RenderedUserData(
            rendered=rendered,
            payload=payload,
            uri=uri,
            encoded=encode_user_data(uri, self._converter.ignition_version),
        )

    def render_stack(self, cluster: Cluster, node_pool: NodePool, values: Values) -> str:
        """Render the stack document of a node pool."""
        user_data = self.prepare_user_data(cluster, node_pool, values)
        log.debug(
            "User data for {pool} published to {uri}", pool=node_pool.name, uri=user_data.uri
        )

        path = self.profile_dir(node_pool) / STACK_FILE_NAME
        return render_template(
            path,
            {
                "Cluster": cluster,
                "NodePool": node_pool,
                "UserData": user_data.encoded,
                "Values": values,
            },
        )
