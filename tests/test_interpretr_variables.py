import pytest

from interpretr.interpretr_variables import Variables
from interpretr.interpretr_datatypes import UndefinedVariable


@pytest.fixture
def lvars():
    return Variables('local')


def test_frame_pushes_and_pops(lvars):
    assert lvars.depth == 0
    with lvars.frame({'a': 1}):
        assert lvars.depth == 1
        assert lvars.fetch('a') == 1
    assert lvars.depth == 0


def test_frame_copies_initial_bindings(lvars):
    seed = {'a': 1}
    with lvars.frame(seed):
        lvars.set('a', 2)
        lvars.set('b', 3)
    assert seed == {'a': 1}


def test_frame_popped_when_body_raises(lvars):
    with pytest.raises(ZeroDivisionError):
        with lvars.frame({'a': 1}):
            with lvars.frame():
                1 / 0
    assert lvars.depth == 0


def test_set_writes_to_outer_frame_that_declares_name(lvars):
    with lvars.frame({'x': 1}) as outer:
        with lvars.frame() as inner:
            lvars.set('x', 2)
            assert 'x' not in inner
        assert outer['x'] == 2
        assert lvars.fetch('x') == 2


def test_set_declares_in_innermost_frame_when_absent(lvars):
    with lvars.frame() as outer:
        with lvars.frame() as inner:
            lvars.set('y', 5)
            assert inner == {'y': 5}
        assert 'y' not in outer
        assert 'y' not in lvars


def test_inner_binding_shadows_outer_on_read(lvars):
    with lvars.frame({'x': 'outer'}):
        with lvars.frame({'x': 'inner'}):
            assert lvars.fetch('x') == 'inner'
            lvars.set('x', 'changed')
        assert lvars.fetch('x') == 'outer'


def test_get_invokes_fallback_on_miss(lvars):
    with lvars.frame():
        assert lvars.get('missing', lambda: None) is None
        assert lvars.get('missing', lambda: 'default') == 'default'


def test_fetch_raises_undefined_variable(lvars):
    with lvars.frame():
        with pytest.raises(UndefinedVariable) as exc:
            lvars.fetch('nope')
    assert exc.value.name == 'nope'
    assert "undefined local variable `nope'" in str(exc.value)


def test_set_without_any_frame_is_an_error(lvars):
    with pytest.raises(RuntimeError):
        lvars.set('x', 1)


def test_frame_with_base_swaps_and_restores_stack(lvars):
    with lvars.frame({'captured': 1}):
        chain = lvars.snapshot()
    with lvars.frame({'caller': 2}):
        with lvars.frame({'arg': 3}, base=chain):
            assert lvars.fetch('captured') == 1
            assert lvars.fetch('arg') == 3
            assert 'caller' not in lvars
            lvars.set('captured', 10)
        assert lvars.fetch('caller') == 2
        assert lvars.depth == 1
    # The captured frame object itself was updated
    assert chain[0]['captured'] == 10


def test_clear_drops_all_frames(lvars):
    with lvars.frame({'a': 1}):
        with lvars.frame({'b': 2}):
            lvars.clear()
            assert lvars.depth == 0
            assert 'a' not in lvars
    assert lvars.depth == 0
