from tokenforge.core.logs import LogBuffer, LogEntry


def test_log_buffer_redacts_base58() -> None:
    buffer = LogBuffer()
    entry = buffer.record("ledger", "Mint VkgXGe7czUXXcWzeWgt6H9VxLJhqioU5AnqRC1Ry2GK created")
    assert "VkgX…y2GK" in entry.message
    assert "VkgXGe7czUXXcWzeWgt6H9VxLJhqioU5AnqRC1Ry2GK" not in entry.message


def test_log_buffer_recent_filters_and_limits() -> None:
    buffer = LogBuffer(max_entries=5)
    buffer.record("wallet", "w1")
    buffer.record("upload", "u1")
    buffer.record("wallet", "w2")
    buffer.record("ledger", "l1")
    recent_wallet = buffer.recent(category="wallet", limit=5)
    assert [entry.message for entry in recent_wallet] == ["w1", "w2"]


def test_log_buffer_is_bounded() -> None:
    buffer = LogBuffer(max_entries=2)
    for index in range(4):
        buffer.record("system", f"m{index}")
    assert [entry.message for entry in buffer.recent()] == ["m2", "m3"]


def test_log_buffer_normalizes_invalid_inputs() -> None:
    buffer = LogBuffer()
    entry = buffer.record("custom", "message", severity="verbose")
    assert entry.category == "system"
    assert entry.severity == "info"


def test_stages_and_subscribers() -> None:
    buffer = LogBuffer()
    seen: list[LogEntry] = []
    buffer.subscribe(seen.append)

    buffer.record("upload", "upload started", stage="upload")
    buffer.record("ledger", "sizing started", stage="sizing")
    buffer.record("upload", "upload completed", stage="upload")
    buffer.unsubscribe(seen.append)
    buffer.record("system", "ignored")

    assert buffer.stages() == ["upload", "sizing"]
    assert [entry.message for entry in seen] == ["upload started", "sizing started", "upload completed"]
    assert seen[0].as_dict()["stage"] == "upload"
