# clusterlint

`clusterlint` lints the objects of a live Kubernetes cluster. It fetches
nodes, pods, persistent volumes and claims, storage classes, namespaces,
webhook configurations and more through the Kubernetes API, runs a set of
checks over them and reports problems as errors, warnings or suggestions.

## Installation

```
pip install .
```

For development, with the test dependencies:

```
pip install -e ".[test]"
pytest
```

## Command line

List every registered check with its description:

```
clusterlint list
```

List only the checks in some groups, or outside them:

```
clusterlint list -g doks
clusterlint list -G security
```

Run the checks against the cluster of your current kubeconfig context:

```
clusterlint run
```

Options of `run`:

| Option | Meaning |
| --- | --- |
| `-g`, `--groups` | run only the checks in these groups |
| `-G`, `--ignore-groups` | skip the checks in these groups |
| `-c`, `--checks` | run only these checks (takes precedence over `-g`) |
| `-C`, `--ignore-checks` | skip these checks |
| `-n`, `--namespace` | look only at objects in this namespace |
| `-N`, `--ignore-namespace` | ignore objects in this namespace |
| `-o`, `--output` | `text` (default) or `json` |
| `-l`, `--level` | show only `error`, `warning` or `suggestion` diagnostics |
| `--no-color` | plain text output without colours |

Group and check options may be repeated or given comma separated values.
An unknown check or group name is reported as an error.

Global options, given before the command:

| Option | Meaning |
| --- | --- |
| `--kubeconfig PATH` | kubeconfig file to use; otherwise the `:`-separated files in `$KUBECONFIG`, or `~/.kube/config` |
| `--context NAME` | kubeconfig context; the current context by default |
| `--timeout DURATION` | request timeout such as `30s`, `1m30s` or `500ms` (30 seconds by default) |
| `--in-cluster` | use the service account of the pod the tool runs in |

For example:

```
clusterlint --context staging run -g doks -N kube-system -o json
```

`--namespace` and `--ignore-namespace` cannot be given together, and
kubeconfig files cannot be combined with `--in-cluster`.

On failure the command prints `failed: <reason>` and exits with status 1.

### Output

Text output prints one line per diagnostic, in the form
`[severity] namespace/kind/name: message`, coloured red for errors,
yellow for warnings and blue for suggestions unless `--no-color` is given.

JSON output prints one document with a `Diagnostics` list (each entry
holding `severity`, `message`, `kind`, `object`, `owners`, `details` and
`check`) and a `Durations` map from check name to its run time in
nanoseconds.

## Checks

| Name | Group | What it looks for |
| --- | --- | --- |
| `noop` | | nothing; always passes |
| `node-name-pod-selector` | doks | pods selecting nodes by `kubernetes.io/hostname` |
| `node-labels-and-taints` | doks | custom node labels and taints that are lost on node replacement |
| `admission-controller-webhook-replacement` | doks | webhooks that can block upgrades or node replacement |
| `admission-controller-webhook-timeout` | doks | webhooks with a timeout outside 1–29 seconds |
| `dobs-pod-owner` | doks | pods using DigitalOcean block storage that no StatefulSet owns |
| `privileged-containers` | security | containers running in privileged mode |
| `non-root-user` | security | containers that may run as root |

## Library use

The same work can be done from Python. Importing `clusterlint.cli`
registers all the built-in checks:

```python
from clusterlint.checks.run_checks import run
from clusterlint.cli import select_checks
from clusterlint.kube.object_filter import new_object_filter
from clusterlint.kube.objects import new_client
from clusterlint.kube.options import with_kube_context

client = new_client(with_kube_context("staging"))
checks = select_checks(["doks"], [], [], [])
result = run(client, checks, None, new_object_filter("", "kube-system"))

for diagnostic in result.diagnostics:
    print(diagnostic)
```

`run` returns a `CheckResult` with `diagnostics` and `durations` (in
seconds). A check that raises makes `run` raise `RuntimeError`.

New checks subclass `clusterlint.checks.registry.Check`, set `name`,
`groups` and `description`, implement `run(objects)` returning a list of
`Diagnostic` values, and are made known with
`clusterlint.checks.registry.register`. Objects are plain API JSON
documents (dictionaries) held by `clusterlint.kube.objects.Objects`.

## Limitations

- Checks can only be added from Python code; the command line has no way
  to load extra check modules.
- Kubeconfig support covers server addresses, certificate authorities,
  client certificates and keys, bearer tokens and token files, and basic
  authentication. Exec and auth-provider credential plugins are not
  supported.
- Diagnostics cannot be silenced per object; use `--ignore-checks`,
  `--ignore-groups` or `--ignore-namespace` instead.