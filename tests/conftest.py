from pathlib import Path

import pytest

SITE_CONFIG = """\
title: Test Blog
site: https://david-04.github.io
output_dir: docs
social:
  github: https://github.com/david-04
custom_css:
  - assets/customization.css
sidebar:
  - label: Blog
    link: blog/
redirects:
  /: /blog
sitemap:
  include:
    - /blog/
banners:
  quality:
    exhaustiveness-checks-in-typescript: 75
"""

INDEX_MDX = """\
---
title: Blog
description: Articles about programming
---
import { CardGrid } from '@astrojs/starlight/components';

Welcome to the blog.

- [Exhaustiveness checks](/blog/exhaustiveness-checks-in-typescript/)
"""

POST_MD = """\
---
title: Exhaustiveness checks in TypeScript
description: Let the compiler find the missing cases
slug: blog/exhaustiveness-checks-in-typescript
author: David
date: 2024-03-01
---

Switch statements over union types can be checked at compile time.

## The problem

```ts
type Shape = "circle" | "square";
```

### Details

## The solution

###### Too deep for the TOC
"""


def write_site(root: Path) -> Path:
    """Write a small but complete site into ``root`` and return it."""
    root.mkdir(parents=True)
    (root / "inkwell.yaml").write_text(SITE_CONFIG, encoding="utf-8")
    blog = root / "content" / "blog"
    blog.mkdir(parents=True)
    (blog / "index.mdx").write_text(INDEX_MDX, encoding="utf-8")
    (blog / "exhaustiveness.md").write_text(POST_MD, encoding="utf-8")
    (root / "assets").mkdir()
    (root / "assets" / "customization.css").write_text(
        ":root { --accent: teal; }", encoding="utf-8"
    )
    (root / "public").mkdir()
    (root / "public" / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")
    return root


@pytest.fixture
def site_project(tmp_path):
    return write_site(tmp_path / "site")
