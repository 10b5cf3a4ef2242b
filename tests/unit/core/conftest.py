"""Shared fixtures for core unit tests"""

import pytest

from mystfmt.core.models import TransformationConfig
from mystfmt.core.parse import parse_content


SAMPLE_MD = """\
# Getting Started

This chapter walks through the installation steps for the tool.

Warning: never run the installer as root on a shared machine.

```
pip install mystfmt
```

- first item
- second item

> A quoted line
> continues here

$$
E = mc^2
$$

Final paragraph with a [link](guide.md).
"""

FORMATTED_MD = """\
# Getting Started

This chapter walks through the installation steps for the tool.

:::{warning}
Warning: never run the installer as root on a shared machine.
:::

```shell
pip install mystfmt
```

- first item
- second item

> A quoted line
> continues here

$$
E = mc^2
$$

Final paragraph with a [link](guide.md).
"""


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="formatted_md")
def formatted_md_fixture():
    return FORMATTED_MD


@pytest.fixture(name="sample_blocks")
def sample_blocks_fixture():
    return parse_content(SAMPLE_MD).blocks


@pytest.fixture(name="config")
def config_fixture():
    return TransformationConfig(selected_features=["admonitions", "code-block"])
