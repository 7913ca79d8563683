#!/usr/bin/env python3
"""Running samples in a hand-built environment, without a manuscript directory."""

import json
import sys
import tempfile
from pathlib import Path

from bookcheck import EnvironmentTemplate, SampleExecutor, SampleExtractor
from bookcheck.executor import format_failure
from bookcheck.loader import load_document
from bookcheck.primitives import expect

CHAPTER = """\
# Weather report

The forecast comes from a web service that the book mocks:

```python
import weather

forecast = weather.today("Oslo")
weather.today.assert_called_once_with("Oslo")
```

Reports are stored as JSON:

<!-- report = {"city": "Oslo", "celsius": 3} -->

```python
encoded = json.dumps(report, sort_keys=True)
```

<!-- expect(encoded).to_equal('{"celsius": 3, "city": "Oslo"}') -->

This one is wrong on purpose:

<!-- report = {"city": "Oslo", "celsius": 3} -->

```python
expect(report["celsius"]).to_be(30)
```
"""


def main() -> int:
    environment = EnvironmentTemplate(
        globals={"json": json, "expect": expect},
        mocks={"weather": {"today": "stub"}},
    )
    executor = SampleExecutor(environment)

    with tempfile.TemporaryDirectory() as directory:
        path = Path(directory) / "weather.md"
        path.write_text(CHAPTER, encoding="utf-8")

        samples = list(SampleExtractor().extract(load_document(path)))
        results = [executor.execute(sample, f"Weather report {n}") for n, sample in enumerate(samples, 1)]

        for sample, result in zip(samples, results):
            print(f"{result.name} ({sample.display_name}): {'ok' if result.passed else 'FAILED'}")
            if result.error is not None:
                print(format_failure(sample.filename, result.error))

    # Only the last sample is expected to fail
    return 0 if [result.passed for result in results] == [True, True, False] else 1


if __name__ == "__main__":
    sys.exit(main())
