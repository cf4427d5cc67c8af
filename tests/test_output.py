from bark.output import OwnedOutput


def test_lock_yields_output():
    device = object()
    ref = OwnedOutput(device).steal()
    with ref.lock() as held:
        assert held is device


def test_steal_empties_previous_reference():
    device = object()
    owned = OwnedOutput(device)
    first = owned.steal()
    second = owned.steal()
    with first.lock() as held:
        assert held is None
    with second.lock() as held:
        assert held is device


def test_repeated_steals_keep_only_latest():
    device = object()
    owned = OwnedOutput(device)
    refs = [owned.steal() for _ in range(3)]
    held = []
    for ref in refs:
        with ref.lock() as out:
            held.append(out)
    assert held == [None, None, device]