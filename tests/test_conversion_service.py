"""
Tests for the conversion workflow
"""

import re

import pytest

from tripmatch.errors import (
    InvalidTransitionError,
    SessionConflictError,
    UnauthorizedError,
    UpstreamFailureError,
)
from tripmatch.interfaces import MemoryBookingGateway
from tripmatch.schemas import (
    Caller,
    ConversionOption,
    ConversionSession,
    ConversionStatus,
    ConversionType,
    MatchingAlgorithm,
    MatchingFilters,
    OptionType,
    PackageComponent,
    PricingStrategy,
    RequestStatus,
    Role,
    SelectedOption,
)
from tripmatch.services import TRANSITIONS, transition
from tripmatch.services import conversion_service as conversion_module


class FailingGateway(MemoryBookingGateway):

    def create_package_booking(self, session, payment_method):
        raise UpstreamFailureError("gateway down")


def _raises(message):
    def broken(*args, **kwargs):
        raise RuntimeError(message)
    return broken


def _concurrent_write_on_load(monkeypatch, store):
    """Another admin saves the session right after this caller loads it"""
    load = store.load

    def load_then_race(session_id):
        session = load(session_id)
        if session is not None:
            store.save(session)
        return session

    monkeypatch.setattr(store, "load", load_then_race)


def _selected(final_price=2100.0):
    return SelectedOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match", final_price=final_price)


def _start(service, caller, request_id="req_1", conversion_type=ConversionType.ASSISTED):
    response = service.start_conversion_process(caller, request_id, conversion_type)
    assert response.success, response.message
    return response.session_id


def _ready_for_booking(service, caller):
    session_id = _start(service, caller)
    assert service.execute_package_matching(caller, session_id).success
    assert service.calculate_conversion_pricing(
        caller, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match")
    ).success
    assert service.select_conversion_option(caller, session_id, _selected()).success
    return session_id


class TestStateMachine:

    def test_terminal_states_have_no_exits(self):
        assert TRANSITIONS[ConversionStatus.CONVERSION_COMPLETE] == frozenset()
        assert TRANSITIONS[ConversionStatus.CUSTOMER_REJECTED] == frozenset()

    def test_every_status_is_covered(self):
        assert set(TRANSITIONS) == set(ConversionStatus)

    def test_invalid_transition_raises(self):
        session = ConversionSession(id="conv_1", request_id="req_1", admin_id="admin_1")
        with pytest.raises(InvalidTransitionError):
            transition(session, ConversionStatus.CONVERSION_COMPLETE)

    def test_transition_returns_copy(self):
        session = ConversionSession(id="conv_1", request_id="req_1", admin_id="admin_1")
        moved = transition(session, ConversionStatus.ANALYSIS_COMPLETE)
        assert moved.status == ConversionStatus.ANALYSIS_COMPLETE
        assert session.status == ConversionStatus.ANALYSIS_PENDING


class TestStartConversion:

    def test_assisted_start(self, conversion_service, session_store, admin):
        response = conversion_service.start_conversion_process(admin, "req_1")

        assert response.success
        assert response.status == ConversionStatus.ANALYSIS_COMPLETE
        assert response.estimated_completion_time == "1-3 horas"
        assert response.next_steps == ["Executar busca de correspondências", "Avaliar opções disponíveis"]
        assert response.message == "Processo de conversão iniciado com sucesso."

        session = session_store.load(response.session_id)
        assert session.admin_id == "admin_1"
        assert session.analysis_result.overall_score == 100
        assert [e.event for e in session.timeline] == ["conversion_started"]
        assert session.timeline[0].description == "Processo de conversão iniciado por partner"

    def test_automatic_start_matches_immediately(self, conversion_service, session_store, admin):
        response = conversion_service.start_conversion_process(admin, "req_1", ConversionType.AUTOMATIC)

        assert response.status == ConversionStatus.MATCHES_FOUND
        assert response.estimated_completion_time == "15-30 minutos"

        session = session_store.load(response.session_id)
        assert [e.event for e in session.timeline] == ["conversion_started", "matching_complete"]
        assert session.matching_result.algorithm == MatchingAlgorithm.HYBRID
        # Automatic matching keeps only strong matches
        assert [m.package_id for m in session.matching_result.matches] == ["pkg_match"]

    def test_automatic_start_without_matches(self, conversion_service, admin):
        response = conversion_service.start_conversion_process(admin, "req_amazonia", ConversionType.AUTOMATIC)
        assert response.status == ConversionStatus.CUSTOM_PACKAGE_REQUIRED

    def test_start_is_idempotent(self, conversion_service, session_store, admin, master):
        first = conversion_service.start_conversion_process(admin, "req_1")
        second = conversion_service.start_conversion_process(master, "req_1", ConversionType.AUTOMATIC)

        assert second.success
        assert second.session_id == first.session_id
        assert second.message == "Conversão já em andamento."
        assert len(session_store.list_sessions()) == 1

    def test_analysis_failure_is_tolerated(self, conversion_service, admin, monkeypatch):
        def broken_analysis(*args, **kwargs):
            raise RuntimeError("analysis unavailable")

        monkeypatch.setattr(conversion_module, "analyze_package_request", broken_analysis)
        response = conversion_service.start_conversion_process(admin, "req_1", ConversionType.AUTOMATIC)

        assert response.success
        assert response.status == ConversionStatus.ANALYSIS_PENDING

    def test_unknown_request(self, conversion_service, admin):
        response = conversion_service.start_conversion_process(admin, "req_missing")
        assert not response.success
        assert response.message == "Solicitação de pacote não encontrada."

    def test_traveler_is_rejected(self, conversion_service, session_store, traveler):
        response = conversion_service.start_conversion_process(traveler, "req_1")

        assert not response.success
        assert response.message == "Acesso negado. Apenas admins podem gerenciar conversões."
        assert session_store.list_sessions() == []

    def test_anonymous_caller_is_rejected(self, conversion_service):
        response = conversion_service.start_conversion_process(None, "req_1")
        assert not response.success
        assert response.message.startswith("Acesso negado")


class TestWorkflow:

    def test_full_conversion(self, conversion_service, session_store, catalog, booking_gateway, admin):
        session_id = _start(conversion_service, admin)

        matching = conversion_service.execute_package_matching(admin, session_id)
        assert matching.success
        assert matching.message == "2 correspondências encontradas."

        pricing = conversion_service.calculate_conversion_pricing(
            admin, session_id,
            ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match"),
            PricingStrategy.COST_PLUS,
        )
        assert pricing.success
        assert pricing.pricing.original_price == 2000

        selection = conversion_service.select_conversion_option(admin, session_id, _selected())
        assert selection.success
        assert selection.next_step == "customer_approval"
        assert catalog.get_package_request_details("req_1").status == RequestStatus.APPROVED
        assert session_store.load(session_id).status == ConversionStatus.CUSTOMER_APPROVAL_PENDING

        booking = conversion_service.execute_conversion_to_booking(admin, session_id, customer_approval=True)
        assert booking.success
        assert booking.message == "Conversão concluída com sucesso!"
        assert booking.booking_id.startswith("PKG_")
        assert re.fullmatch(r"CONF_[A-Z0-9]{8}", booking.confirmation_code)

        session = session_store.load(session_id)
        assert session.status == ConversionStatus.CONVERSION_COMPLETE
        assert session.booking_id == booking.booking_id
        assert [e.event for e in session.timeline] == [
            "conversion_started",
            "matching_complete",
            "pricing_calculated",
            "option_selected",
            "conversion_complete",
        ]

        request = catalog.get_package_request_details("req_1")
        assert request.status == RequestStatus.COMPLETED
        assert request.admin_notes == f"Convertido para reserva {booking.booking_id}"
        assert len(booking_gateway.bookings) == 1

    def test_matching_filters(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        response = conversion_service.execute_package_matching(
            admin, session_id, MatchingAlgorithm.HYBRID, MatchingFilters(min_score=60, max_results=5)
        )
        assert [m.package_id for m in response.matches] == ["pkg_match"]

    def test_custom_package_pricing(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)

        option = ConversionOption(
            type=OptionType.CUSTOM_PACKAGE,
            custom_components=[PackageComponent(type="hotel", base_price=400, quantity=4)],
        )
        response = conversion_service.calculate_conversion_pricing(admin, session_id, option)

        assert response.success
        assert response.pricing.original_price == 1600

    def test_modified_package_adds_extras(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)

        option = ConversionOption(
            type=OptionType.MODIFIED_PACKAGE,
            package_id="pkg_match",
            custom_components=[PackageComponent(type="passeio", base_price=150, quantity=2)],
        )
        response = conversion_service.calculate_conversion_pricing(admin, session_id, option)
        assert response.pricing.original_price == 2300

    def test_custom_package_needs_components(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)

        response = conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.CUSTOM_PACKAGE)
        )
        assert not response.success
        assert response.message == "Pacote personalizado precisa de componentes."

    def test_pricing_unknown_package(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)

        response = conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_missing")
        )
        assert response.message == "Pacote não encontrado."

    def test_selection_before_matching_is_invalid(self, conversion_service, session_store, admin):
        session_id = _start(conversion_service, admin)
        response = conversion_service.select_conversion_option(admin, session_id, _selected())

        assert not response.success
        assert response.message.startswith("Transição inválida")
        assert session_store.load(session_id).status == ConversionStatus.ANALYSIS_COMPLETE

    def test_unknown_session(self, conversion_service, admin):
        response = conversion_service.execute_package_matching(admin, "conv_missing")
        assert response.message == "Sessão de conversão não encontrada."


class TestOwnership:

    def test_other_admin_cannot_change_session(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        other = Caller(user_id="admin_2", role=Role.EMPLOYEE)

        response = conversion_service.execute_package_matching(other, session_id)
        assert not response.success
        assert response.message == "Acesso negado. Sessão pertence a outro administrador."

    def test_master_can_change_any_session(self, conversion_service, admin, master):
        session_id = _start(conversion_service, admin)
        assert conversion_service.execute_package_matching(master, session_id).success

    def test_any_admin_can_read_status(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        other = Caller(user_id="admin_2", role=Role.EMPLOYEE)

        assert conversion_service.get_conversion_status(other, session_id=session_id).id == session_id
        assert conversion_service.get_conversion_status(other, request_id="req_1").id == session_id
        assert conversion_service.get_conversion_status(other) is None

    def test_traveler_cannot_read_status(self, conversion_service, traveler):
        with pytest.raises(UnauthorizedError):
            conversion_service.get_conversion_status(traveler, request_id="req_1")


class TestBooking:

    def test_rejection_has_no_side_effects(self, conversion_service, session_store, catalog, booking_gateway, admin):
        session_id = _ready_for_booking(conversion_service, admin)
        before = session_store.load(session_id)

        response = conversion_service.execute_conversion_to_booking(admin, session_id, customer_approval=False)

        assert not response.success
        assert response.message == "Conversão cancelada - cliente não aprovou."
        assert response.booking_id is None
        assert booking_gateway.bookings == []
        assert session_store.load(session_id) == before
        assert catalog.get_package_request_details("req_1").status == RequestStatus.APPROVED

    def test_rejection_still_requires_admin(self, conversion_service, traveler):
        response = conversion_service.execute_conversion_to_booking(traveler, "conv_any", customer_approval=False)
        assert response.message == "Acesso negado. Apenas admins podem gerenciar conversões."

    def test_booking_without_selection(self, conversion_service, admin):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)

        response = conversion_service.execute_conversion_to_booking(admin, session_id, customer_approval=True)
        assert not response.success
        assert response.message == "Sessão inválida ou opção não selecionada."

    def test_completed_session_cannot_book_twice(self, conversion_service, booking_gateway, admin):
        session_id = _ready_for_booking(conversion_service, admin)
        assert conversion_service.execute_conversion_to_booking(admin, session_id, True).success

        again = conversion_service.execute_conversion_to_booking(admin, session_id, True)
        assert not again.success
        assert len(booking_gateway.bookings) == 1

    def test_gateway_failure_then_retry(self, conversion_service, session_store, catalog, admin):
        session_id = _ready_for_booking(conversion_service, admin)

        conversion_service.booking_gateway = FailingGateway()
        failed = conversion_service.execute_conversion_to_booking(admin, session_id, True)

        assert not failed.success
        assert failed.message == "Erro ao executar conversão: gateway down"
        session = session_store.load(session_id)
        assert session.status == ConversionStatus.CONVERSION_FAILED
        assert session.timeline[-1].event == "conversion_failed"
        assert catalog.get_package_request_details("req_1").status == RequestStatus.APPROVED

        conversion_service.booking_gateway = MemoryBookingGateway()
        retried = conversion_service.execute_conversion_to_booking(admin, session_id, True)

        assert retried.success
        assert session_store.load(session_id).status == ConversionStatus.CONVERSION_COMPLETE


class TestAnalytics:

    def test_completed_conversion_counts(self, conversion_service, admin, master):
        session_id = _ready_for_booking(conversion_service, admin)
        conversion_service.execute_conversion_to_booking(admin, session_id, True)
        _start(conversion_service, master, "req_amazonia")

        analytics = conversion_service.get_conversion_analytics(master)

        assert analytics.total_conversions == 1
        assert analytics.conversion_rate == 50.0
        assert analytics.revenue_generated == 2100.0
        assert analytics.conversions_by_type.existing_package == 1
        assert analytics.sessions_by_status == {"conversion_complete": 1, "analysis_complete": 1}

        top = analytics.top_performing_matches
        assert len(top) == 1
        assert top[0].package_id == "pkg_match"
        assert top[0].package_name == "Pacote Fernando de Noronha Completo"
        assert top[0].conversion_rate == 100.0

    def test_non_master_sees_only_own_sessions(self, conversion_service, admin, master):
        _start(conversion_service, admin)
        _start(conversion_service, master, "req_amazonia")

        own = conversion_service.get_conversion_analytics(admin, partner_id="master_1")
        assert sum(own.sessions_by_status.values()) == 1

        everyone = conversion_service.get_conversion_analytics(master)
        assert sum(everyone.sessions_by_status.values()) == 2

        narrowed = conversion_service.get_conversion_analytics(master, partner_id="admin_1")
        assert sum(narrowed.sessions_by_status.values()) == 1

    def test_empty_analytics(self, conversion_service, master):
        analytics = conversion_service.get_conversion_analytics(master)
        assert analytics.total_conversions == 0
        assert analytics.conversion_rate == 0.0
        assert analytics.top_performing_matches == []

    def test_traveler_cannot_read_analytics(self, conversion_service, traveler):
        with pytest.raises(UnauthorizedError):
            conversion_service.get_conversion_analytics(traveler)


class TestBackendFailures:

    def test_start_reports_catalog_error(self, conversion_service, session_store, catalog, admin, monkeypatch):
        monkeypatch.setattr(catalog, "get_package_request_details", _raises("db timeout"))

        response = conversion_service.start_conversion_process(admin, "req_1")

        assert not response.success
        assert response.message == "Erro ao iniciar conversão: db timeout"
        assert session_store.list_sessions() == []

    def test_automatic_matching_failure_is_tolerated(self, conversion_service, matching_service, admin, monkeypatch):
        monkeypatch.setattr(matching_service, "execute_matching", _raises("matcher crashed"))

        response = conversion_service.start_conversion_process(admin, "req_1", ConversionType.AUTOMATIC)

        assert response.success
        assert response.status == ConversionStatus.ANALYSIS_COMPLETE

    def test_matching_reports_catalog_error(self, conversion_service, session_store, catalog, admin, monkeypatch):
        session_id = _start(conversion_service, admin)
        before = session_store.load(session_id)
        monkeypatch.setattr(catalog, "get_all_packages", _raises("db timeout"))

        response = conversion_service.execute_package_matching(admin, session_id)

        assert not response.success
        assert response.message == "Erro ao executar correspondência: db timeout"
        assert session_store.load(session_id) == before

    def test_pricing_reports_catalog_error(self, conversion_service, session_store, catalog, admin, monkeypatch):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)
        before = session_store.load(session_id)
        monkeypatch.setattr(catalog, "count_recent_requests", _raises("db timeout"))

        response = conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match")
        )

        assert not response.success
        assert response.message == "Erro ao calcular preços: db timeout"
        assert response.pricing is None
        assert session_store.load(session_id) == before

    def test_selection_keeps_session_when_request_update_fails(
        self, conversion_service, session_store, catalog, admin, monkeypatch
    ):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)
        conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match")
        )
        before = session_store.load(session_id)
        monkeypatch.setattr(catalog, "update_package_request_status", _raises("db write timeout"))

        response = conversion_service.select_conversion_option(admin, session_id, _selected())

        assert not response.success
        assert response.message == "Erro ao selecionar opção: db write timeout"
        after = session_store.load(session_id)
        assert after == before
        assert after.status == ConversionStatus.PRICING_CALCULATED
        assert after.selected_option is None

    def test_unfinished_booking_fails_session_and_retry_reuses_it(
        self, conversion_service, session_store, catalog, booking_gateway, admin, monkeypatch
    ):
        session_id = _ready_for_booking(conversion_service, admin)
        update_status = catalog.update_package_request_status

        def completion_fails(request_id, status, admin_notes=None):
            if status == RequestStatus.COMPLETED:
                raise RuntimeError("db write timeout")
            return update_status(request_id, status, admin_notes)

        monkeypatch.setattr(catalog, "update_package_request_status", completion_fails)
        failed = conversion_service.execute_conversion_to_booking(admin, session_id, True)

        assert not failed.success
        assert failed.message == "Erro ao executar conversão: db write timeout"
        assert failed.booking_id.startswith("PKG_")
        session = session_store.load(session_id)
        assert session.status == ConversionStatus.CONVERSION_FAILED
        assert session.booking_id == failed.booking_id
        assert session.timeline[-1].event == "conversion_failed"

        monkeypatch.undo()
        retried = conversion_service.execute_conversion_to_booking(admin, session_id, True)

        assert retried.success
        assert retried.booking_id == failed.booking_id
        assert retried.confirmation_code == failed.confirmation_code
        assert len(booking_gateway.bookings) == 1
        assert session_store.load(session_id).status == ConversionStatus.CONVERSION_COMPLETE
        assert catalog.get_package_request_details("req_1").status == RequestStatus.COMPLETED

    def test_session_write_failure_after_booking_marks_session_failed(
        self, conversion_service, session_store, booking_gateway, admin, monkeypatch
    ):
        session_id = _ready_for_booking(conversion_service, admin)
        save = session_store.save

        def completion_conflicts(session):
            if session.status == ConversionStatus.CONVERSION_COMPLETE:
                raise SessionConflictError("Sessão alterada por outro administrador - recarregue e tente novamente")
            return save(session)

        monkeypatch.setattr(session_store, "save", completion_conflicts)
        response = conversion_service.execute_conversion_to_booking(admin, session_id, True)

        assert not response.success
        session = session_store.load(session_id)
        assert session.status == ConversionStatus.CONVERSION_FAILED
        assert session.booking_id == response.booking_id
        assert len(booking_gateway.bookings) == 1


class TestConcurrentEdits:

    def test_stale_pricing_leaves_session_untouched(self, conversion_service, session_store, admin, monkeypatch):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)
        before = session_store.load(session_id)

        _concurrent_write_on_load(monkeypatch, session_store)
        response = conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match")
        )
        monkeypatch.undo()

        assert not response.success
        assert response.message == "Sessão alterada por outro administrador - recarregue e tente novamente"
        after = session_store.load(session_id)
        assert after.status == ConversionStatus.MATCHES_FOUND
        assert after.pricing_result is None
        assert after.timeline == before.timeline

    def test_stale_selection_restores_request(self, conversion_service, session_store, catalog, admin, monkeypatch):
        session_id = _start(conversion_service, admin)
        conversion_service.execute_package_matching(admin, session_id)
        conversion_service.calculate_conversion_pricing(
            admin, session_id, ConversionOption(type=OptionType.EXISTING_PACKAGE, package_id="pkg_match")
        )
        before = session_store.load(session_id)

        _concurrent_write_on_load(monkeypatch, session_store)
        response = conversion_service.select_conversion_option(admin, session_id, _selected())
        monkeypatch.undo()

        assert not response.success
        assert response.message.startswith("Sessão alterada por outro administrador")
        after = session_store.load(session_id)
        assert after.status == ConversionStatus.PRICING_CALCULATED
        assert after.selected_option is None
        assert after.timeline == before.timeline
        assert catalog.get_package_request_details("req_1").status == RequestStatus.PENDING

    def test_stale_booking_creates_nothing(
        self, conversion_service, session_store, catalog, booking_gateway, admin, monkeypatch
    ):
        session_id = _ready_for_booking(conversion_service, admin)
        before = session_store.load(session_id)

        _concurrent_write_on_load(monkeypatch, session_store)
        response = conversion_service.execute_conversion_to_booking(admin, session_id, True)
        monkeypatch.undo()

        assert not response.success
        assert response.message.startswith("Sessão alterada por outro administrador")
        assert response.booking_id is None
        assert booking_gateway.bookings == []
        after = session_store.load(session_id)
        assert after.status == ConversionStatus.CUSTOMER_APPROVAL_PENDING
        assert after.timeline == before.timeline
        assert catalog.get_package_request_details("req_1").status == RequestStatus.APPROVED


class TestAutoConversionCandidates:

    def test_pending_requests_ranked(self, conversion_service, admin):
        candidates = conversion_service.get_conversion_candidates(admin)

        assert [c.request_id for c in candidates] == ["req_1", "req_amazonia"]
        assert [c.analysis_score for c in candidates] == [80, 70]
        assert candidates[0].top_match_name == "Pacote Fernando de Noronha Completo"

    def test_threshold_and_limit(self, conversion_service, admin):
        assert [c.request_id for c in conversion_service.get_conversion_candidates(admin, min_score=75)] == ["req_1"]
        assert len(conversion_service.get_conversion_candidates(admin, limit=1)) == 1

    def test_approved_requests_are_not_candidates(self, conversion_service, admin):
        _ready_for_booking(conversion_service, admin)
        candidates = conversion_service.get_conversion_candidates(admin)
        assert [c.request_id for c in candidates] == ["req_amazonia"]

    def test_traveler_cannot_list_candidates(self, conversion_service, traveler):
        with pytest.raises(UnauthorizedError):
            conversion_service.get_conversion_candidates(traveler)

    def test_mark_for_auto_conversion(self, conversion_service, catalog, admin):
        response = conversion_service.mark_for_auto_conversion(admin, "req_1", "pkg_match", "cliente VIP")

        assert response.success
        assert response.message == "Solicitação marcada para conversão automática."
        assert re.fullmatch(r"CONV-\d+", response.conversion_id)

        request = catalog.get_package_request_details("req_1")
        assert request.status == RequestStatus.APPROVED
        assert request.admin_notes == "Marcado para conversão automática - Pacote: pkg_match\nNotas: cliente VIP"

    def test_mark_without_notes(self, conversion_service, catalog, admin):
        conversion_service.mark_for_auto_conversion(admin, "req_1", "pkg_match")
        assert catalog.get_package_request_details("req_1").admin_notes == (
            "Marcado para conversão automática - Pacote: pkg_match"
        )

    def test_mark_unknown_package(self, conversion_service, catalog, admin):
        response = conversion_service.mark_for_auto_conversion(admin, "req_1", "pkg_missing")

        assert not response.success
        assert response.message == "Pacote não encontrado."
        assert response.conversion_id is None
        assert catalog.get_package_request_details("req_1").status == RequestStatus.PENDING

    def test_mark_reports_catalog_error(self, conversion_service, catalog, admin, monkeypatch):
        monkeypatch.setattr(catalog, "update_package_request_status", _raises("db write timeout"))

        response = conversion_service.mark_for_auto_conversion(admin, "req_1", "pkg_match")

        assert not response.success
        assert response.message == "Erro ao marcar para conversão: db write timeout"

    def test_traveler_cannot_mark(self, conversion_service, traveler):
        response = conversion_service.mark_for_auto_conversion(traveler, "req_1", "pkg_match")
        assert response.message == "Acesso negado. Apenas admins podem gerenciar conversões."
