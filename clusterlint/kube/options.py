"""Options that control how a Kubernetes client is built."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

TransportWrapper = Callable[[Any], Any]
"""Takes the HTTP session the client would use and returns the one it should use."""


@dataclass
class ClientOptions:
    """Settings gathered from options before a client is built."""

    paths: list[str] = field(default_factory=list)
    kube_context: str = ""
    yaml: Optional[Union[bytes, str]] = None
    transport_wrapper: Optional[TransportWrapper] = None
    timeout: float = 0.0
    in_cluster: bool = False

    def validate(self) -> None:
        """Raise ValueError if the options contradict each other."""
        if self.yaml is not None and self.paths:
            raise ValueError("cannot specify yaml and kubeconfig file paths")
        if (self.yaml is not None or self.paths) and self.in_cluster:
            raise ValueError(
                "cannot specify yaml or kubeconfig file paths when running in-cluster mode"
            )


Option = Callable[[ClientOptions], None]


def with_config_file(path: str) -> Option:
    """Use a single kubeconfig file."""

    def apply(options: ClientOptions) -> None:
        options.paths = [path]

    return apply


def with_kube_context(kube_context: str) -> Option:
    """Use the named kubeconfig context instead of the current one."""

    def apply(options: ClientOptions) -> None:
        options.kube_context = kube_context

    return apply


def with_yaml(yaml: Union[bytes, str]) -> Option:
    """Use a kubeconfig given as a YAML document."""

    def apply(options: ClientOptions) -> None:
        options.yaml = yaml

    return apply


def with_merged_config_files(paths: list[str]) -> Option:
    """Merge several kubeconfig files, earlier files taking precedence."""

    def apply(options: ClientOptions) -> None:
        options.paths = list(paths)

    return apply


def with_timeout(t: float) -> Option:
    """Set the request timeout in seconds; zero means no timeout."""

    def apply(options: ClientOptions) -> None:
        options.timeout = t

    return apply


def with_transport_wrapper(f: TransportWrapper) -> Option:
    """Wrap the HTTP session the client uses."""

    def apply(options: ClientOptions) -> None:
        options.transport_wrapper = f

    return apply


def in_cluster() -> Option:
    """Access the Kubernetes API from inside a pod."""

    def apply(options: ClientOptions) -> None:
        options.in_cluster = True

    return apply