"""Bootstrap payload conversion and the remote-fetch Ignition skeleton.

Rendered user data is transpiled into an Ignition config, published to
object storage, and instances receive only a tiny skeleton pointing at
it. CloudFormation limits the template body size, so the full payload
is never embedded inline.
"""

from __future__ import annotations

import base64
import json
import shutil
import subprocess
from collections.abc import Sequence

from loguru import logger

from nodeform.constants import IGNITION_VERSION

log = logger.bind(component="bootstrap")


class ConversionError(Exception):
    """Raised by converters when rendered user data is not valid input."""


class ButaneConverter:
    """Transpiles Butane/Container Linux configs to Ignition via the ``butane`` CLI.

    Args:
        binary: Name or path of the butane executable.
        strict: Fail on warnings as well as errors.
        timeout: Seconds to wait for the transpiler.
        ignition_version: Ignition spec version butane emits for the
            profiles' config variant (fcos 1.5.0 yields 3.4.0).
    """

    def __init__(
        self,
        binary: str = "butane",
        *,
        strict: bool = True,
        timeout: float = 30.0,
        ignition_version: str = IGNITION_VERSION,
    ) -> None:
        self.binary = binary
        self.strict = strict
        self.timeout = timeout
        self.ignition_version = ignition_version

    def _command(self) -> Sequence[str]:
        cmd = [self.binary]
        if self.strict:
            cmd.append("--strict")
        return cmd

    def convert(self, rendered: str) -> bytes:
        if shutil.which(self.binary) is None:
            raise ConversionError(f"{self.binary} not found in PATH")

        try:
            result = subprocess.run(
                self._command(),
                input=rendered.encode(),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"{self.binary} timed out after {self.timeout:.0f}s") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise ConversionError(stderr or f"{self.binary} exited with {result.returncode}")

        log.debug("Converted {n} bytes of user data", n=len(rendered))
        return result.stdout


def ignition_skeleton(uri: str, version: str = IGNITION_VERSION) -> str:
    """Ignition config that replaces itself with the config at ``uri``.

    ``version`` must match the spec version of the referenced config.
    """
    return json.dumps(
        {"ignition": {"version": version, "config": {"replace": {"source": uri}}}},
        indent=2,
    )


def encode_user_data(uri: str, version: str = IGNITION_VERSION) -> str:
    """Base64 EC2 user data bootstrapping from the published config."""
    return base64.b64encode(ignition_skeleton(uri, version).encode()).decode()
