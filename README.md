# cloudconf

A library for cloud-config user-data. It tells what kind of user-data you
have, parses cloud-config YAML into typed dataclasses, decodes embedded file
contents, and produces a validation report whose findings carry line numbers.

## Installation

```
pip install cloudconf
```

## Validating user-data

```python
from cloudconf.validate import validate

report = validate(b"#cloud-config\ncoreos:\n  update:\n    reboot_strategy: always\n")
for entry in report.entries:
    print(entry)            # line 4: error: invalid value always
    print(entry.to_json())  # {"kind":"error","line":4,"message":"invalid value always"}
```

`validate` takes bytes or text. Empty input, scripts (first line starts with
`#!`) and Ignition configs (JSON with `ignitionVersion` or `ignition.version`)
give an empty `Report`. Anything else that does not start with a
`#cloud-config` line gets one error entry on line 1.

A cloud-config is checked by every rule in `cloudconf.rules.RULES`:

- `check_structure`: unrecognized keys, deprecated keys and values of the
  wrong type;
- `check_validity`: values outside the pattern their option allows, such as
  `reboot_strategy` or a unit's `command`;
- `check_encoding`: `write_files` contents that cannot be decoded with their
  `encoding`;
- `check_write_files`: files whose directory lies under `/usr`;
- `check_write_files_under_coreos`: a `write_files` section placed under
  `coreos`;
- `check_discovery_url`: an etcd `discovery` value that is not a valid URL.

YAML syntax errors are recorded in the report with their line. If
validation itself fails, `validate_cloud_config` raises
`cloudconf.validate.ValidationError`. You may pass your own sequence of rules
to `validate_cloud_config(config, rules)`; each rule is a callable taking the
parsed `Node` tree and the `Report`.

Each `Entry` has a `kind` (`EntryKind.ERROR`, `WARNING` or `INFO`), a
`message` and a `line`.

## Parsing a cloud-config

```python
from cloudconf.config import is_cloud_config, new_cloud_config

text = (
    "#cloud-config\n"
    "hostname: node1\n"
    "write_files:\n"
    "  - path: /etc/motd\n"
    "    encoding: b64\n"
    "    content: aGVsbG8K\n"
)
if is_cloud_config(text):
    cc = new_cloud_config(text)
    cc.decode()                       # decodes write_files contents in place
    print(cc.write_files[0].content)  # "hello\n"
    print(str(cc))                    # back to "#cloud-config" YAML
```

Keys written with dashes (`reboot-strategy`) are read as their underscore
form. Unknown keys and values of the wrong type are ignored. Malformed YAML
raises `yaml.YAMLError`.

The sections (`Etcd`, `Etcd2`, `Flannel`, `Fleet`, `Locksmith`, `OEM`,
`Update`, `Unit`, `UnitDropIn`, `File`, `User`) live in `cloudconf.schema`.
`field_specs(cls)` lists each option's YAML key, type, environment variable
name, allowed pattern and deprecation note.

`assert_struct_valid(section)` raises `ErrorValid` for the first option whose
value does not match its pattern. Empty values are always accepted.
`is_script` and `is_ignition_config` detect the other kinds of user-data, and
`new_script` wraps user-data as a `Script`.

## Decoding content

```python
from cloudconf.decode import DecodeError, decode_content

decode_content("aGVsbG8K", "base64")   # b"hello\n"
```

The supported encodings are `b64`/`base64`, `gz`/`gzip`, and the
`gz+base64`, `gzip+base64`, `gz+b64` and `gzip+b64` combinations. An empty
encoding returns the content as it is. An unknown encoding or bad data
raises `DecodeError`.

## Handling raw user-data

`cloudconf.userdata.decompress_if_gzip(data)` returns gzip-compressed
user-data decompressed and any other data unchanged. It raises `DecodeError`
for gzip data that cannot be decompressed.

`merge_configs(cc, hostname, ssh_public_keys)` returns a new `CloudConfig`
with meta-data folded in. The hostname is used only when the cloud-config
sets none. The values of the `ssh_public_keys` mapping are appended to
`ssh_authorized_keys`. The `cc` you pass in is not changed.

## What this package does not do

cloudconf only reads and checks user-data. It has no command-line program.
It does not fetch user-data or meta-data from any datasource, and it does not
apply a cloud-config to a system: it writes no files, sets up no units or
users, and runs no scripts. It does not convert network configuration either.

## Running the tests

```
pip install -e ".[test]"
pytest
```