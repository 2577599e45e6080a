"""Tests for abstract values"""

from typeflow.core.function_value import FnType
from typeflow.core.scope import Scope
from typeflow.core.syntax import Block, FunctionDeclaration, Identifier
from typeflow.core.types import AVal, TypeKind


def make_fn(name="f", params=("p",)):
    node = FunctionDeclaration(Identifier(name), [], Block())
    return FnType(name, list(params), Scope(), node)


class TestAVal:
    """Test suite for AVal lattice operations"""

    def test_new_value_is_empty(self):
        """Test a fresh value holds nothing"""
        aval = AVal("x")
        assert aval.is_empty()
        assert aval.types == frozenset()
        assert aval.fns == []
        assert aval.type_names() == []

    def test_add_type_reports_change(self):
        """Test add_type returns True only the first time"""
        aval = AVal()
        assert aval.add_type(TypeKind.NUMBER) is True
        assert aval.add_type(TypeKind.NUMBER) is False
        assert aval.has_type(TypeKind.NUMBER)
        assert not aval.has_type(TypeKind.STRING)

    def test_add_fn_reports_change(self):
        """Test add_fn returns True only the first time"""
        aval = AVal()
        fn = make_fn()
        assert aval.add_fn(fn) is True
        assert aval.add_fn(fn) is False
        assert aval.fns == [fn]

    def test_fns_keep_arrival_order(self):
        """Test function values are listed in arrival order"""
        aval = AVal()
        first, second = make_fn("a"), make_fn("b")
        aval.add_fn(second)
        aval.add_fn(first)
        assert aval.fns == [second, first]

    def test_merge_unions_contents(self):
        """Test merge copies tags and function values"""
        source, target = AVal(), AVal()
        fn = make_fn()
        source.add_type(TypeKind.STRING)
        source.add_fn(fn)
        target.add_type(TypeKind.NUMBER)

        assert target.merge(source) is True
        assert target.types == {TypeKind.NUMBER, TypeKind.STRING}
        assert target.fns == [fn]
        # source unchanged
        assert source.types == {TypeKind.STRING}

    def test_merge_without_growth(self):
        """Test merging a subset reports no change"""
        source, target = AVal(), AVal()
        source.add_type(TypeKind.BOOLEAN)
        target.add_type(TypeKind.BOOLEAN)
        target.add_type(TypeKind.NUMBER)
        assert target.merge(source) is False

    def test_merge_with_self(self):
        """Test merging a value into itself is a no-op"""
        aval = AVal()
        aval.add_type(TypeKind.NUMBER)
        assert aval.merge(aval) is False

    def test_monotonic_snapshots(self):
        """Test snapshots taken over time never shrink"""
        aval = AVal()
        snapshots = [aval.snapshot()]
        for kind in (TypeKind.NUMBER, TypeKind.STRING, TypeKind.NUMBER):
            aval.add_type(kind)
            snapshots.append(aval.snapshot())
        aval.merge(AVal())
        snapshots.append(aval.snapshot())

        for earlier, later in zip(snapshots, snapshots[1:]):
            assert earlier <= later

    def test_empty_value_is_truthy(self):
        """Test empty values are still usable in boolean contexts"""
        assert AVal()

    def test_type_names(self):
        """Test display names list tags then functions"""
        aval = AVal()
        aval.add_fn(make_fn("f", ("a", "b")))
        aval.add_type(TypeKind.STRING)
        aval.add_type(TypeKind.NUMBER)
        assert aval.type_names() == ["number", "string", "fn f(a, b)"]

    def test_repr(self):
        """Test representation includes origin and names"""
        aval = AVal("x")
        aval.add_type(TypeKind.ARRAY)
        assert repr(aval) == "AVal('x', ['Array'])"
