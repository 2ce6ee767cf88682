"""Typed sections of a cloud-config and the metadata attached to their options."""

import dataclasses
import functools
import inspect
import re
import typing
from dataclasses import dataclass
from typing import Any

_META = "cloudconf"

EtcHosts = str

_SCALARS = {"str": str, "int": int, "float": float, "bool": bool}
_LIST_ANNOTATION = re.compile(r"^(?:list|List|typing\.List)\[(.+)\]$")


@dataclass(frozen=True)
class FieldSpec:
    """Description of one option: attribute name, YAML key, type and tags."""

    name: str
    key: str
    type: Any
    env: str | None = None
    valid: str | None = None
    deprecated: str | None = None

    @property
    def is_list(self) -> bool:
        return typing.get_origin(self.type) is list

    @property
    def element_type(self) -> Any:
        """The item type of a list option, or the option's own type."""
        if self.is_list:
            (item,) = typing.get_args(self.type)
            return item
        return self.type


def option(key, default="", env=None, valid=None, deprecated=None):
    """Declare a dataclass field bound to a cloud-config key.

    *default* is either a plain value or a zero-argument factory (such as
    ``list`` or a section class) for mutable defaults.
    """
    metadata = {_META: {"key": key, "env": env, "valid": valid, "deprecated": deprecated}}
    if callable(default):
        return dataclasses.field(default_factory=default, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def _resolve(annotation: Any, cls: type) -> Any:
    """Turn a textual annotation into the type it names."""
    if not isinstance(annotation, str):
        return annotation
    text = annotation.strip()
    match = _LIST_ANNOTATION.match(text)
    if match:
        return list[_resolve(match.group(1), cls)]
    if text in _SCALARS:
        return _SCALARS[text]
    module = inspect.getmodule(cls)
    namespace = vars(module) if module is not None else {}
    try:
        return namespace[text]
    except KeyError:
        raise TypeError(f"cannot resolve type {text!r} of {cls.__name__}") from None


@functools.lru_cache(maxsize=None)
def field_specs(cls) -> tuple[FieldSpec, ...]:
    """Return the option descriptions of a section class, in declaration order."""
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a configuration section")
    specs = []
    for f in dataclasses.fields(cls):
        meta = f.metadata.get(_META)
        if meta is None:
            continue
        specs.append(
            FieldSpec(
                name=f.name,
                key=meta["key"],
                type=_resolve(f.type, cls),
                env=meta["env"],
                valid=meta["valid"],
                deprecated=meta["deprecated"],
            )
        )
    return tuple(specs)


_ETCD_DEPRECATED = "etcd2 options no longer work for etcd"


@dataclass
class Etcd:
    addr: str = option("addr", env="ETCD_ADDR")
    advertise_client_urls: str = option(
        "advertise_client_urls", env="ETCD_ADVERTISE_CLIENT_URLS", deprecated=_ETCD_DEPRECATED
    )
    bind_addr: str = option("bind_addr", env="ETCD_BIND_ADDR")
    ca_file: str = option("ca_file", env="ETCD_CA_FILE")
    cert_file: str = option("cert_file", env="ETCD_CERT_FILE")
    cluster_active_size: int = option("cluster_active_size", 0, env="ETCD_CLUSTER_ACTIVE_SIZE")
    cluster_remove_delay: float = option("cluster_remove_delay", 0.0, env="ETCD_CLUSTER_REMOVE_DELAY")
    cluster_sync_interval: float = option("cluster_sync_interval", 0.0, env="ETCD_CLUSTER_SYNC_INTERVAL")
    cors_origins: str = option("cors", env="ETCD_CORS")
    data_dir: str = option("data_dir", env="ETCD_DATA_DIR")
    discovery: str = option("discovery", env="ETCD_DISCOVERY")
    discovery_fallback: str = option(
        "discovery_fallback", env="ETCD_DISCOVERY_FALLBACK", deprecated=_ETCD_DEPRECATED
    )
    discovery_srv: str = option("discovery_srv", env="ETCD_DISCOVERY_SRV", deprecated=_ETCD_DEPRECATED)
    discovery_proxy: str = option("discovery_proxy", env="ETCD_DISCOVERY_PROXY", deprecated=_ETCD_DEPRECATED)
    election_timeout: int = option(
        "election_timeout", 0, env="ETCD_ELECTION_TIMEOUT", deprecated=_ETCD_DEPRECATED
    )
    force_new_cluster: bool = option(
        "force_new_cluster", False, env="ETCD_FORCE_NEW_CLUSTER", deprecated=_ETCD_DEPRECATED
    )
    graphite_host: str = option("graphite_host", env="ETCD_GRAPHITE_HOST")
    heartbeat_interval: int = option(
        "heartbeat_interval", 0, env="ETCD_HEARTBEAT_INTERVAL", deprecated=_ETCD_DEPRECATED
    )
    http_read_timeout: float = option("http_read_timeout", 0.0, env="ETCD_HTTP_READ_TIMEOUT")
    http_write_timeout: float = option("http_write_timeout", 0.0, env="ETCD_HTTP_WRITE_TIMEOUT")
    initial_advertise_peer_urls: str = option(
        "initial_advertise_peer_urls", env="ETCD_INITIAL_ADVERTISE_PEER_URLS", deprecated=_ETCD_DEPRECATED
    )
    initial_cluster: str = option("initial_cluster", env="ETCD_INITIAL_CLUSTER", deprecated=_ETCD_DEPRECATED)
    initial_cluster_state: str = option(
        "initial_cluster_state", env="ETCD_INITIAL_CLUSTER_STATE", deprecated=_ETCD_DEPRECATED
    )
    initial_cluster_token: str = option(
        "initial_cluster_token", env="ETCD_INITIAL_CLUSTER_TOKEN", deprecated=_ETCD_DEPRECATED
    )
    key_file: str = option("key_file", env="ETCD_KEY_FILE")
    listen_client_urls: str = option(
        "listen_client_urls", env="ETCD_LISTEN_CLIENT_URLS", deprecated=_ETCD_DEPRECATED
    )
    listen_peer_urls: str = option("listen_peer_urls", env="ETCD_LISTEN_PEER_URLS", deprecated=_ETCD_DEPRECATED)
    max_result_buffer: int = option("max_result_buffer", 0, env="ETCD_MAX_RESULT_BUFFER")
    max_retry_attempts: int = option("max_retry_attempts", 0, env="ETCD_MAX_RETRY_ATTEMPTS")
    max_snapshots: int = option("max_snapshots", 0, env="ETCD_MAX_SNAPSHOTS", deprecated=_ETCD_DEPRECATED)
    max_wals: int = option("max_wals", 0, env="ETCD_MAX_WALS", deprecated=_ETCD_DEPRECATED)
    name: str = option("name", env="ETCD_NAME")
    peer_addr: str = option("peer_addr", env="ETCD_PEER_ADDR")
    peer_bind_addr: str = option("peer_bind_addr", env="ETCD_PEER_BIND_ADDR")
    peer_ca_file: str = option("peer_ca_file", env="ETCD_PEER_CA_FILE")
    peer_cert_file: str = option("peer_cert_file", env="ETCD_PEER_CERT_FILE")
    peer_election_timeout: int = option("peer_election_timeout", 0, env="ETCD_PEER_ELECTION_TIMEOUT")
    peer_heartbeat_interval: int = option("peer_heartbeat_interval", 0, env="ETCD_PEER_HEARTBEAT_INTERVAL")
    peer_key_file: str = option("peer_key_file", env="ETCD_PEER_KEY_FILE")
    peers: str = option("peers", env="ETCD_PEERS")
    peers_file: str = option("peers_file", env="ETCD_PEERS_FILE")
    proxy: str = option("proxy", env="ETCD_PROXY", deprecated=_ETCD_DEPRECATED)
    retry_interval: float = option("retry_interval", 0.0, env="ETCD_RETRY_INTERVAL")
    snapshot: bool = option("snapshot", False, env="ETCD_SNAPSHOT")
    snapshot_count: int = option("snapshot_count", 0, env="ETCD_SNAPSHOTCOUNT")
    str_trace: str = option("trace", env="ETCD_TRACE")
    verbose: bool = option("verbose", False, env="ETCD_VERBOSE")
    very_verbose: bool = option("very_verbose", False, env="ETCD_VERY_VERBOSE")
    very_very_verbose: bool = option("very_very_verbose", False, env="ETCD_VERY_VERY_VERBOSE")


@dataclass
class Etcd2:
    advertise_client_urls: str = option("advertise_client_urls", env="ETCD_ADVERTISE_CLIENT_URLS")
    ca_file: str = option(
        "ca_file",
        env="ETCD_CA_FILE",
        deprecated="ca_file obsoleted by trusted_ca_file and client_cert_auth",
    )
    cert_file: str = option("cert_file", env="ETCD_CERT_FILE")
    client_cert_auth: bool = option("client_cert_auth", False, env="ETCD_CLIENT_CERT_AUTH")
    cors_origins: str = option("cors", env="ETCD_CORS")
    data_dir: str = option("data_dir", env="ETCD_DATA_DIR")
    debug: bool = option("debug", False, env="ETCD_DEBUG")
    discovery: str = option("discovery", env="ETCD_DISCOVERY")
    discovery_fallback: str = option("discovery_fallback", env="ETCD_DISCOVERY_FALLBACK")
    discovery_srv: str = option("discovery_srv", env="ETCD_DISCOVERY_SRV")
    discovery_proxy: str = option("discovery_proxy", env="ETCD_DISCOVERY_PROXY")
    election_timeout: int = option("election_timeout", 0, env="ETCD_ELECTION_TIMEOUT")
    enable_pprof: bool = option("enable_pprof", False, env="ETCD_ENABLE_PPROF")
    force_new_cluster: bool = option("force_new_cluster", False, env="ETCD_FORCE_NEW_CLUSTER")
    heartbeat_interval: int = option("heartbeat_interval", 0, env="ETCD_HEARTBEAT_INTERVAL")
    initial_advertise_peer_urls: str = option(
        "initial_advertise_peer_urls", env="ETCD_INITIAL_ADVERTISE_PEER_URLS"
    )
    initial_cluster: str = option("initial_cluster", env="ETCD_INITIAL_CLUSTER")
    initial_cluster_state: str = option("initial_cluster_state", env="ETCD_INITIAL_CLUSTER_STATE")
    initial_cluster_token: str = option("initial_cluster_token", env="ETCD_INITIAL_CLUSTER_TOKEN")
    key_file: str = option("key_file", env="ETCD_KEY_FILE")
    listen_client_urls: str = option("listen_client_urls", env="ETCD_LISTEN_CLIENT_URLS")
    listen_peer_urls: str = option("listen_peer_urls", env="ETCD_LISTEN_PEER_URLS")
    log_package_levels: str = option("log_package_levels", env="ETCD_LOG_PACKAGE_LEVELS")
    max_snapshots: int = option("max_snapshots", 0, env="ETCD_MAX_SNAPSHOTS")
    max_wals: int = option("max_wals", 0, env="ETCD_MAX_WALS")
    name: str = option("name", env="ETCD_NAME")
    peer_ca_file: str = option(
        "peer_ca_file",
        env="ETCD_PEER_CA_FILE",
        deprecated="peer_ca_file obsoleted peer_trusted_ca_file and peer_client_cert_auth",
    )
    peer_cert_file: str = option("peer_cert_file", env="ETCD_PEER_CERT_FILE")
    peer_key_file: str = option("peer_key_file", env="ETCD_PEER_KEY_FILE")
    peer_client_cert_auth: bool = option("peer_client_cert_auth", False, env="ETCD_PEER_CLIENT_CERT_AUTH")
    peer_trusted_ca_file: str = option("peer_trusted_ca_file", env="ETCD_PEER_TRUSTED_CA_FILE")
    proxy: str = option("proxy", env="ETCD_PROXY", valid=r"^(on|off|readonly)$")
    proxy_dial_timeout: int = option("proxy_dial_timeout", 0, env="ETCD_PROXY_DIAL_TIMEOUT")
    proxy_failure_wait: int = option("proxy_failure_wait", 0, env="ETCD_PROXY_FAILURE_WAIT")
    proxy_read_timeout: int = option("proxy_read_timeout", 0, env="ETCD_PROXY_READ_TIMEOUT")
    proxy_refresh_interval: int = option("proxy_refresh_interval", 0, env="ETCD_PROXY_REFRESH_INTERVAL")
    proxy_write_timeout: int = option("proxy_write_timeout", 0, env="ETCD_PROXY_WRITE_TIMEOUT")
    snapshot_count: int = option("snapshot_count", 0, env="ETCD_SNAPSHOT_COUNT")
    strict_reconfig_check: bool = option("strict_reconfig_check", False, env="ETCD_STRICT_RECONFIG_CHECK")
    trusted_ca_file: str = option("trusted_ca_file", env="ETCD_TRUSTED_CA_FILE")
    wal_dir: str = option("wal_dir", env="ETCD_WAL_DIR")


@dataclass
class Flannel:
    etcd_endpoints: str = option("etcd_endpoints", env="FLANNELD_ETCD_ENDPOINTS")
    etcd_cafile: str = option("etcd_cafile", env="FLANNELD_ETCD_CAFILE")
    etcd_certfile: str = option("etcd_certfile", env="FLANNELD_ETCD_CERTFILE")
    etcd_keyfile: str = option("etcd_keyfile", env="FLANNELD_ETCD_KEYFILE")
    etcd_prefix: str = option("etcd_prefix", env="FLANNELD_ETCD_PREFIX")
    ip_masq: str = option("ip_masq", env="FLANNELD_IP_MASQ")
    subnet_file: str = option("subnet_file", env="FLANNELD_SUBNET_FILE")
    iface: str = option("interface", env="FLANNELD_IFACE")
    public_ip: str = option("public_ip", env="FLANNELD_PUBLIC_IP")


@dataclass
class Fleet:
    agent_ttl: str = option("agent_ttl", env="FLEET_AGENT_TTL")
    authorized_keys_file: str = option("authorized_keys_file", env="FLEET_AUTHORIZED_KEYS_FILE")
    disable_engine: bool = option("disable_engine", False, env="FLEET_DISABLE_ENGINE")
    engine_reconcile_interval: float = option(
        "engine_reconcile_interval", 0.0, env="FLEET_ENGINE_RECONCILE_INTERVAL"
    )
    etcd_cafile: str = option("etcd_cafile", env="FLEET_ETCD_CAFILE")
    etcd_certfile: str = option("etcd_certfile", env="FLEET_ETCD_CERTFILE")
    etcd_keyfile: str = option("etcd_keyfile", env="FLEET_ETCD_KEYFILE")
    etcd_key_prefix: str = option("etcd_key_prefix", env="FLEET_ETCD_KEY_PREFIX")
    etcd_request_timeout: float = option("etcd_request_timeout", 0.0, env="FLEET_ETCD_REQUEST_TIMEOUT")
    etcd_servers: str = option("etcd_servers", env="FLEET_ETCD_SERVERS")
    metadata: str = option("metadata", env="FLEET_METADATA")
    public_ip: str = option("public_ip", env="FLEET_PUBLIC_IP")
    token_limit: int = option("token_limit", 0, env="FLEET_TOKEN_LIMIT")
    verbosity: int = option("verbosity", 0, env="FLEET_VERBOSITY")
    verify_units: bool = option("verify_units", False, env="FLEET_VERIFY_UNITS")


@dataclass
class Locksmith:
    endpoint: str = option("endpoint", env="LOCKSMITHD_ENDPOINT")
    etcd_cafile: str = option("etcd_cafile", env="LOCKSMITHD_ETCD_CAFILE")
    etcd_certfile: str = option("etcd_certfile", env="LOCKSMITHD_ETCD_CERTFILE")
    etcd_keyfile: str = option("etcd_keyfile", env="LOCKSMITHD_ETCD_KEYFILE")
    group: str = option("group", env="LOCKSMITHD_GROUP")
    reboot_window_start: str = option(
        "window_start",
        env="REBOOT_WINDOW_START",
        valid=r"^((?i:sun|mon|tue|wed|thu|fri|sat|sun) )?0*([0-9]|1[0-9]|2[0-3]):0*([0-9]|[1-5][0-9])$",
    )
    reboot_window_length: str = option(
        "window_length",
        env="REBOOT_WINDOW_LENGTH",
        valid=r"^[-+]?([0-9]*(\.[0-9]*)?[a-z]+)+$",
    )


@dataclass
class OEM:
    id: str = option("id")
    name: str = option("name")
    version_id: str = option("version_id")
    home_url: str = option("home_url")
    bug_report_url: str = option("bug_report_url")


@dataclass
class Update:
    reboot_strategy: str = option(
        "reboot_strategy",
        env="REBOOT_STRATEGY",
        valid=r"^(best-effort|etcd-lock|reboot|off)$",
    )
    group: str = option("group", env="GROUP")
    server: str = option("server", env="SERVER")


@dataclass
class UnitDropIn:
    name: str = option("name")
    content: str = option("content")


@dataclass
class Unit:
    name: str = option("name")
    mask: bool = option("mask", False)
    enable: bool = option("enable", False)
    runtime: bool = option("runtime", False)
    content: str = option("content")
    command: str = option(
        "command",
        valid=r"^(start|stop|restart|reload|try-restart|reload-or-restart|reload-or-try-restart)$",
    )
    drop_ins: list[UnitDropIn] = option("drop_ins", list)


@dataclass
class File:
    encoding: str = option(
        "encoding",
        valid=r"^(base64|b64|gz|gzip|gz\+base64|gzip\+base64|gz\+b64|gzip\+b64)$",
    )
    content: str = option("content")
    owner: str = option("owner")
    path: str = option("path")
    raw_file_permissions: str = option("permissions", valid=r"^0?[0-7]{3,4}$")


_REMOTE_KEYS_DEPRECATED = "trying to fetch from a remote endpoint introduces too many intermittent errors"

# YAML key under which a user's crypted login hash is given.
_USER_HASH_YAML_KEY = "passwd"


@dataclass
class User:
    name: str = option("name")
    password_hash: str = option(_USER_HASH_YAML_KEY)
    ssh_authorized_keys: list[str] = option("ssh_authorized_keys", list)
    ssh_import_github_user: str = option("coreos_ssh_import_github", deprecated=_REMOTE_KEYS_DEPRECATED)
    ssh_import_github_users: list[str] = option(
        "coreos_ssh_import_github_users", list, deprecated=_REMOTE_KEYS_DEPRECATED
    )
    ssh_import_url: str = option("coreos_ssh_import_url", deprecated=_REMOTE_KEYS_DEPRECATED)
    gecos: str = option("gecos")
    homedir: str = option("homedir")
    no_create_home: bool = option("no_create_home", False)
    primary_group: str = option("primary_group")
    groups: list[str] = option("groups", list)
    no_user_group: bool = option("no_user_group", False)
    system: bool = option("system", False)
    no_log_init: bool = option("no_log_init", False)
    shell: str = option("shell")