"""
Tests for StepIdentifier derivation: declared identity vs type + call site.
"""

from flow_steps import Help, Named, Welcome
from onboarding import (
    DerivedIdentity,
    FlowElement,
    SourceLocation,
    StepIdentifier,
    TypeAndLocation,
    identifier_for,
    step,
)


class TestStepIdentifierEquality:
    """Equality and hashing only look at the identity kind."""

    def test_same_declared_identity_is_equal(self):
        a = StepIdentifier.from_identity("intro")
        b = StepIdentifier.from_identity("intro", step_type=Welcome)
        assert a == b
        assert hash(a) == hash(b)

    def test_custom_flag_does_not_affect_equality(self):
        a = StepIdentifier.from_identity("intro", custom=True)
        b = StepIdentifier.from_identity("intro")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_identities_differ(self):
        assert StepIdentifier.from_identity("a") != StepIdentifier.from_identity("b")

    def test_type_at_same_location_is_equal(self):
        location = SourceLocation("flow.py", 10, 4)
        assert StepIdentifier.from_type(Welcome, location) == StepIdentifier.from_type(Welcome, location)

    def test_type_at_different_locations_differ(self):
        a = StepIdentifier.from_type(Welcome, SourceLocation("flow.py", 10, 4))
        b = StepIdentifier.from_type(Welcome, SourceLocation("flow.py", 11, 4))
        assert a != b

    def test_identity_and_type_kinds_never_equal(self):
        a = StepIdentifier.from_identity("tests.Welcome")
        b = StepIdentifier.from_type(Welcome)
        assert a != b

    def test_usable_as_dict_key(self):
        steps = {StepIdentifier.from_identity("intro"): 1}
        assert steps[StepIdentifier.from_identity("intro", custom=True)] == 1


class TestIdentifierFor:
    """identifier_for() precedence: explicit identity, onboarding_identity, type + site."""

    def test_explicit_identity_wins(self):
        identifier = identifier_for(FlowElement(payload=Named("from-payload"), identity="explicit"))
        assert identifier.identity_kind == DerivedIdentity("explicit")

    def test_payload_identity_used(self):
        identifier = identifier_for(FlowElement(payload=Named("consent")))
        assert identifier.identity_kind == DerivedIdentity("consent")
        assert identifier.declared_identity == "consent"

    def test_type_and_location_fallback(self):
        element = FlowElement(payload=Welcome(), source_location=SourceLocation("flow.py", 3, 8))
        identifier = identifier_for(element)
        assert isinstance(identifier.identity_kind, TypeAndLocation)
        assert identifier.identity_kind.type_name.endswith("Welcome")
        assert identifier.identity_kind.line == 3
        assert identifier.declared_identity is None

    def test_step_type_recorded(self):
        identifier = identifier_for(FlowElement(payload=Help()))
        assert identifier.step_type is Help
        assert identifier.matches_type(Help)
        assert not identifier.matches_type(Welcome)

    def test_custom_flag(self):
        assert identifier_for(FlowElement(payload=Help()), custom=True).is_custom


class TestStepCallSite:
    """step() records where it was called."""

    def test_records_this_file(self):
        element = step(Welcome())
        assert element.source_location is not None
        assert element.source_location.file == __file__

    def test_distinct_lines_give_distinct_identifiers(self):
        first = step(Welcome())
        second = step(Welcome())
        assert identifier_for(first) != identifier_for(second)

    def test_same_line_different_columns_are_distinct(self):
        first, second = step(Welcome()), step(Welcome())
        assert identifier_for(first) != identifier_for(second)

    def test_loop_declarations_collide(self):
        elements = [step(Welcome()) for _ in range(2)]
        assert identifier_for(elements[0]) == identifier_for(elements[1])

    def test_loop_with_explicit_identity_is_distinct(self):
        elements = [step(Welcome(), identity=f"welcome-{i}") for i in range(2)]
        assert identifier_for(elements[0]) != identifier_for(elements[1])
