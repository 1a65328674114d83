"""Fetching the objects of a Kubernetes cluster and building API clients."""

from __future__ import annotations

import base64
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

import requests
import yaml

from clusterlint.kube.object_filter import ObjectFilter
from clusterlint.kube.options import ClientOptions, Option

KubeObject = dict[str, Any]

NAMESPACE_SYSTEM = "kube-system"
DEFAULT_CLASS_ANNOTATION = "storageclass.kubernetes.io/is-default-class"

_SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
_IN_CLUSTER_ERROR = (
    "unable to load in-cluster configuration, "
    "KUBERNETES_SERVICE_HOST and KUBERNETES_SERVICE_PORT must be defined"
)
_NO_CONFIG_ERROR = "invalid configuration: no configuration has been provided"


class KubeAPIError(Exception):
    """A request to the Kubernetes API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, reason: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class NotFoundError(KubeAPIError):
    """The requested resource does not exist on the server."""

    def __init__(self, message: str, status_code: Optional[int] = 404, reason: str = "NotFound"):
        super().__init__(message, status_code, reason)


@dataclass
class Objects:
    """All the objects fetched from a cluster, as API JSON documents."""

    nodes: Optional[list[KubeObject]] = None
    persistent_volumes: Optional[list[KubeObject]] = None
    system_namespace: Optional[KubeObject] = None
    pods: Optional[list[KubeObject]] = None
    pod_templates: Optional[list[KubeObject]] = None
    persistent_volume_claims: Optional[list[KubeObject]] = None
    config_maps: Optional[list[KubeObject]] = None
    services: Optional[list[KubeObject]] = None
    secrets: Optional[list[KubeObject]] = None
    service_accounts: Optional[list[KubeObject]] = None
    resource_quotas: Optional[list[KubeObject]] = None
    limit_ranges: Optional[list[KubeObject]] = None
    storage_classes: Optional[list[KubeObject]] = None
    default_storage_class: Optional[KubeObject] = None
    mutating_webhook_configurations: Optional[list[KubeObject]] = None
    validating_webhook_configurations: Optional[list[KubeObject]] = None
    namespaces: Optional[list[KubeObject]] = None
    cron_jobs: Optional[list[KubeObject]] = None


_LIST_FIELDS = (
    "nodes",
    "persistent_volumes",
    "pods",
    "pod_templates",
    "persistent_volume_claims",
    "config_maps",
    "services",
    "secrets",
    "service_accounts",
    "resource_quotas",
    "limit_ranges",
    "storage_classes",
    "mutating_webhook_configurations",
    "validating_webhook_configurations",
    "namespaces",
    "cron_jobs",
)

# attribute, API path, whether the namespace filter applies, label used in
# errors (None: errors are passed on unchanged and "not found" is not excused)
_LISTS = (
    ("nodes", "/api/v1/nodes", False, None),
    ("storage_classes", "/apis/storage.k8s.io/v1/storageclasses", False, None),
    ("persistent_volumes", "/api/v1/persistentvolumes", False, "PersistentVolumes"),
    ("pods", "/api/v1/pods", True, "Pods"),
    ("pod_templates", "/api/v1/podtemplates", True, "PodTemplates"),
    ("persistent_volume_claims", "/api/v1/persistentvolumeclaims", True, "PersistentVolumeClaims"),
    ("config_maps", "/api/v1/configmaps", True, "ConfigMaps"),
    ("secrets", "/api/v1/secrets", True, "Secrets"),
    ("services", "/api/v1/services", True, "Services"),
    ("service_accounts", "/api/v1/serviceaccounts", True, "ServiceAccounts"),
    ("resource_quotas", "/api/v1/resourcequotas", True, "ResourceQuotas"),
    ("limit_ranges", "/api/v1/limitranges", True, "LimitRanges"),
    (
        "mutating_webhook_configurations",
        "/apis/admissionregistration.k8s.io/v1/mutatingwebhookconfigurations",
        False,
        "MutatingWebhookConfigurations (v1)",
    ),
    (
        "validating_webhook_configurations",
        "/apis/admissionregistration.k8s.io/v1/validatingwebhookconfigurations",
        False,
        "ValidatingWebhookConfigurations (v1)",
    ),
    ("namespaces", "/api/v1/namespaces", False, "Namespaces"),
    ("cron_jobs", "/apis/batch/v1beta1/cronjobs", True, "CronJobs"),
)


def annotate_fetch_error(kind: str, err: Optional[BaseException]) -> Optional[KubeAPIError]:
    """Describe a failed fetch, or return None if there is nothing to report."""
    if err is None or isinstance(err, NotFoundError):
        # A missing resource type just means there is nothing of it to check.
        return None
    return KubeAPIError(
        f"failed to fetch {kind}: {err}", status_code=getattr(err, "status_code", None)
    )


def objects_without_nils(objects: Objects) -> Objects:
    """Replace every missing object list with an empty one."""
    for name in _LIST_FIELDS:
        if getattr(objects, name) is None:
            setattr(objects, name, [])
    return objects


def _error_from_response(response: Any) -> KubeAPIError:
    message = ""
    reason = ""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or ""
        reason = body.get("reason") or ""
    if not message:
        message = getattr(response, "text", "") or f"status {response.status_code}"
    if response.status_code == 404 or reason == "NotFound":
        return NotFoundError(message, response.status_code)
    return KubeAPIError(message, response.status_code, reason)


def _is_default_class(storage_class: KubeObject) -> bool:
    annotations = (storage_class.get("metadata") or {}).get("annotations") or {}
    return annotations.get(DEFAULT_CLASS_ANNOTATION) == "true"


@dataclass
class Client:
    """A client for the API server of one Kubernetes cluster."""

    server: str
    session: Any = field(default_factory=requests.Session)
    timeout: Optional[float] = None

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> KubeObject:
        url = self.server.rstrip("/") + path
        try:
            response = self.session.get(url, params=params or None, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KubeAPIError(str(exc)) from exc
        if response.status_code >= 400:
            raise _error_from_response(response)
        return response.json()

    def _list(self, path: str, params: Optional[dict[str, Any]] = None) -> list[KubeObject]:
        return list(self._get(path, params).get("items") or [])

    def _fetch_list(
        self, path: str, params: dict[str, Any], label: Optional[str]
    ) -> Optional[list[KubeObject]]:
        try:
            return self._list(path, params)
        except KubeAPIError as exc:
            if label is None:
                raise
            annotated = annotate_fetch_error(label, exc)
            if annotated is None:
                return None
            raise annotated from exc

    def _fetch_system_namespace(self) -> KubeObject:
        try:
            return self._get(f"/api/v1/namespaces/{NAMESPACE_SYSTEM}")
        except KubeAPIError as exc:
            raise KubeAPIError(
                f'failed to fetch namespace "{NAMESPACE_SYSTEM}": {exc}',
                status_code=exc.status_code,
            ) from exc

    def fetch_objects(self, object_filter: Optional[ObjectFilter] = None) -> Objects:
        """Fetch every kind of object the checks look at, in parallel."""
        object_filter = object_filter or ObjectFilter()
        scoped = object_filter.namespace_options({})
        jobs: dict[str, Callable[[], Any]] = {}
        for attribute, path, namespaced, label in _LISTS:
            params = scoped if namespaced else {}
            jobs[attribute] = (
                lambda p=path, q=params, l=label: self._fetch_list(p, q, l)
            )
        jobs["system_namespace"] = self._fetch_system_namespace

        objects = Objects()
        with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
            futures = {name: pool.submit(job) for name, job in jobs.items()}
        for name, future in futures.items():
            setattr(objects, name, future.result())

        for storage_class in objects.storage_classes or []:
            if _is_default_class(storage_class):
                objects.default_storage_class = storage_class
        return objects_without_nils(objects)


@dataclass
class _RestConfig:
    server: str
    verify: Union[bool, str] = True
    cert: Optional[Union[str, tuple[str, str]]] = None
    token: Optional[str] = None
    auth: Optional[tuple[str, str]] = None


def _read_kubeconfig(data: Union[bytes, str], base_dir: Path) -> dict[str, Any]:
    document = yaml.safe_load(data) or {}
    if not isinstance(document, dict):
        raise ValueError("invalid kubeconfig: expected a mapping")
    config: dict[str, Any] = {"current-context": document.get("current-context") or ""}
    for section, key in (("clusters", "cluster"), ("contexts", "context"), ("users", "user")):
        entries: dict[str, dict[str, Any]] = {}
        for entry in document.get(section) or []:
            name = entry.get("name", "")
            entries.setdefault(name, {**(entry.get(key) or {}), "_base": base_dir})
        config[section] = entries
    return config


def _merge_kubeconfigs(configs: list[dict[str, Any]]) -> dict[str, Any]:
    merged: dict[str, Any] = {"current-context": "", "clusters": {}, "contexts": {}, "users": {}}
    for config in configs:
        if not merged["current-context"]:
            merged["current-context"] = config["current-context"]
        for section in ("clusters", "contexts", "users"):
            for name, entry in config[section].items():
                merged[section].setdefault(name, entry)
    return merged


def _resolve(entry: dict[str, Any], key: str) -> Optional[str]:
    value = entry.get(key)
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = entry["_base"] / path
    return str(path)


def _data_file(encoded: str) -> str:
    handle = tempfile.NamedTemporaryFile(prefix="clusterlint-", delete=False)
    with handle:
        handle.write(base64.b64decode(encoded))
    return handle.name


def _file_or_data(entry: dict[str, Any], key: str) -> Optional[str]:
    path = _resolve(entry, key)
    if path:
        return path
    data = entry.get(f"{key}-data")
    return _data_file(data) if data else None


def _build_rest_config(kubeconfig: dict[str, Any], context_override: str) -> _RestConfig:
    context_name = context_override or kubeconfig["current-context"]
    if not context_name:
        raise ValueError(_NO_CONFIG_ERROR)
    context = kubeconfig["contexts"].get(context_name)
    if context is None:
        raise ValueError(f'context "{context_name}" does not exist')
    cluster_name = context.get("cluster", "")
    cluster = kubeconfig["clusters"].get(cluster_name) or {}
    server = cluster.get("server")
    if not server:
        raise ValueError(f'invalid configuration: no server found for cluster "{cluster_name}"')
    user = kubeconfig["users"].get(context.get("user", "")) or {}

    verify: Union[bool, str] = True
    if cluster.get("insecure-skip-tls-verify"):
        verify = False
    else:
        verify = _file_or_data(cluster, "certificate-authority") or True

    cert_file = _file_or_data(user, "client-certificate")
    key_file = _file_or_data(user, "client-key")
    cert: Optional[Union[str, tuple[str, str]]] = None
    if cert_file and key_file:
        cert = (cert_file, key_file)
    elif cert_file:
        cert = cert_file

    token = user.get("token")
    token_file = _resolve(user, "tokenFile")
    if not token and token_file:
        token = Path(token_file).read_text().strip()

    auth = None
    if user.get("username"):
        auth = (user["username"], user.get("password") or "")

    return _RestConfig(server=server, verify=verify, cert=cert, token=token, auth=auth)


def _in_cluster_available() -> bool:
    return bool(os.environ.get("KUBERNETES_SERVICE_HOST")) and bool(
        os.environ.get("KUBERNETES_SERVICE_PORT")
    )


def _in_cluster_config() -> _RestConfig:
    host = os.environ.get("KUBERNETES_SERVICE_HOST", "")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "")
    if not host or not port:
        raise ValueError(_IN_CLUSTER_ERROR)
    token = (_SERVICE_ACCOUNT_DIR / "token").read_text().strip()
    ca_file = _SERVICE_ACCOUNT_DIR / "ca.crt"
    bracketed = f"[{host}]" if ":" in host else host
    return _RestConfig(
        server=f"https://{bracketed}:{port}",
        verify=str(ca_file) if ca_file.is_file() else True,
        token=token,
    )


def _default_kubeconfig_paths() -> list[str]:
    value = os.environ.get("KUBECONFIG", "")
    if value:
        return [path for path in value.split(os.pathsep) if path]
    return [str(Path.home() / ".kube" / "config")]


def new_client_config_from_kube_config(opts: ClientOptions) -> _RestConfig:
    """Load the connection settings from kubeconfig YAML or files."""
    if opts.yaml is not None:
        return _build_rest_config(_read_kubeconfig(opts.yaml, Path.cwd()), "")

    loaded = []
    for path in opts.paths or _default_kubeconfig_paths():
        file_path = Path(path).expanduser()
        if file_path.is_file():
            loaded.append(_read_kubeconfig(file_path.read_bytes(), file_path.parent))
    if not loaded and not opts.kube_context and _in_cluster_available():
        return _in_cluster_config()
    return _build_rest_config(_merge_kubeconfigs(loaded), opts.kube_context)


def new_client(*args: Option) -> Client:
    """Build a client for a live cluster from the given options.

    Without options the kubeconfig files named by $KUBECONFIG, or else
    ~/.kube/config, are used with their current context.
    """
    opts = ClientOptions()
    for option in args:
        option(opts)
    opts.validate()

    if opts.in_cluster:
        config = _in_cluster_config()
    else:
        config = new_client_config_from_kube_config(opts)

    session: Any = requests.Session()
    if config.token:
        session.headers["Authorization"] = f"Bearer {config.token}"
    if config.auth:
        session.auth = config.auth
    session.verify = config.verify
    if config.cert:
        session.cert = config.cert
    if opts.transport_wrapper is not None:
        session = opts.transport_wrapper(session)

    return Client(server=config.server, session=session, timeout=opts.timeout or None)