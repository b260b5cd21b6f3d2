import unittest

from src.tensorlite.domain.utils._control_path import create_path_builder


class _Machine:
    def __init__(self, st):
        self.__st = st

    @property
    def _state(self):
        return self.__st


class TestCreatePathBuilder(unittest.TestCase):
    def setUp(self) -> None:
        # Fresh builder per test to avoid map-sharing across tests.
        self.decorator = create_path_builder()

    def test_state_must_be_hashable(self) -> None:
        class C(_Machine):
            def foo(self, x: int) -> int:
                return x

        with self.assertRaises(TypeError) as ctx:
            self.decorator(C, C.foo, state=["not-hashable"])(lambda self, x: x)

        self.assertIn("must be hashable", str(ctx.exception))

    def test_dispatch_selects_registered_control_path(self) -> None:
        class C(_Machine):
            def foo(self, x: int) -> int:
                return -999

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 10

        @self.decorator(C, C.foo, state="B")
        def foo_B(self, x: int) -> int:
            return x + 20

        self.assertEqual(C("A").foo(1), 11)
        self.assertEqual(C("B").foo(1), 21)

    def test_sub_method_receives_instance(self) -> None:
        class C(_Machine):
            def __init__(self, st, offset):
                super().__init__(st)
                self.offset = offset

            def foo(self, x: int) -> int:
                return -999

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return self.offset + x

        self.assertEqual(C("A", 100).foo(5), 105)

    def test_dispatch_follows_state_changes(self) -> None:
        class C:
            def __init__(self):
                self._state = "A"

            def step(self) -> str:
                return ""

        @self.decorator(C, C.step, state="A")
        def step_A(self) -> str:
            self._state = "B"
            return "first"

        @self.decorator(C, C.step, state="B")
        def step_B(self) -> str:
            return "again"

        c = C()
        self.assertEqual(c.step(), "first")
        self.assertEqual(c.step(), "again")
        self.assertEqual(c.step(), "again")

    def test_dispatch_supports_none_state(self) -> None:
        class C(_Machine):
            def foo(self, x: int) -> int:
                return -999

        @self.decorator(C, C.foo, state=None)
        def foo_none(self, x: int) -> int:
            return x * 2

        self.assertEqual(C(None).foo(3), 6)

    def test_subclasses_inherit_dispatch(self) -> None:
        class Base(_Machine):
            def foo(self) -> str:
                return ""

        class Child(Base):
            pass

        @self.decorator(Base, Base.foo, state="A")
        def foo_A(self) -> str:
            return type(self).__name__

        self.assertEqual(Child("A").foo(), "Child")

    def test_missing_state_property_raises_not_implemented(self) -> None:
        class C:
            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C().foo(1)

        self.assertIn("missing attribute", str(ctx.exception))
        self.assertIn("'_state'", str(ctx.exception))

    def test_missing_control_path_without_trap_exception_raises_not_implemented(
        self,
    ) -> None:
        class C(_Machine):
            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C("B").foo(1)

        self.assertIn("Missing control path", str(ctx.exception))
        self.assertIn("state='B'", str(ctx.exception))

    def test_trap_exception_factory_receives_instance_and_state(self) -> None:
        class MissingPathError(Exception):
            pass

        calls = []

        def trap(obj, state):
            calls.append((obj, state))
            return MissingPathError(f"no path for {state}")

        class C(_Machine):
            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A", trap_exception=trap)
        def foo_A(self, x: int) -> int:
            return x + 1

        obj = C("B")
        with self.assertRaises(MissingPathError) as ctx:
            obj.foo(123)

        self.assertEqual(calls, [(obj, "B")])
        self.assertIn("no path for B", str(ctx.exception))

    def test_wrapper_preserves_original_method_metadata(self) -> None:
        class C(_Machine):
            def foo(self, x: int) -> int:
                """Original foo docstring."""
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        self.assertEqual(C.foo.__name__, "foo")
        self.assertEqual(C.foo.__doc__, "Original foo docstring.")

    def test_two_builders_do_not_share_control_paths(self) -> None:
        deco1 = create_path_builder()
        deco2 = create_path_builder()

        class C(_Machine):
            def foo(self, x: int) -> int:
                return -999

        @deco1(C, C.foo, state="A")
        def foo_A_1(self, x: int) -> int:
            return 111

        # the second installation replaces the wrapper with one bound to deco2
        @deco2(C, C.foo, state="B")
        def foo_B_2(self, x: int) -> int:
            return 222

        with self.assertRaises(NotImplementedError):
            C("A").foo(0)

        self.assertEqual(C("B").foo(0), 222)


if __name__ == "__main__":
    unittest.main()
