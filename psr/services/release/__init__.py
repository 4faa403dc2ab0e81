"""Release orchestration: dev-merge and release workflows.

Layering (leaves first):
- version, artifacts, contributors, filehash: pure rules and text transforms
- context, credential, github: host identity and the REST client
- session, dev_merge, promote: workflow sequencing
"""

from __future__ import annotations
