from __future__ import annotations

from cipherstudio.identity import generate_id


def test_generate_id_is_unique_across_calls() -> None:
    ids = {generate_id() for _ in range(2000)}
    assert len(ids) == 2000


def test_generate_id_is_url_safe() -> None:
    pid = generate_id()
    assert pid
    assert pid.isalnum()
    assert pid == pid.lower()
