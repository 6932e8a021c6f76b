"""apm is a library for managing virtual machine plugins published in git repositories.

Plugin repositories publish `vms/<name>.yaml` and `subnets/<name>.yaml`
definitions. apm tracks a set of these repositories, reconciles their latest
commits into a local registry, and installs plugin binaries into the plugin
directory of a node.

Example usage:

```python
from pathlib import Path

from apm.apm import APM
from apm.config import ApmConfig

with APM(ApmConfig(directory=Path("~/.apm").expanduser())) as a:
    a.bootstrap()
    a.install("spacesvm")
```
"""
