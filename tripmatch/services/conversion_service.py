"""
Conversion Service - Request to Booking Workflow
Drives one conversion session through its states:

analysis_pending -> analysis_complete -> matching_in_progress
    -> matches_found | custom_package_required -> pricing_calculated
    -> ready_for_conversion -> customer_approval_pending
    -> customer_approved -> conversion_in_progress
    -> conversion_complete | conversion_failed

Every public operation returns a `{success, message, ...}` envelope. Errors
raised below (not found, unauthorized, invalid input, invalid transition,
stale session) are turned into failure envelopes here. Anything else raised
by a backend is logged with its traceback and reported as "Erro ao ...: <erro>".
"""

import time
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, List, Optional

from loguru import logger

from ..algorithms.request_analysis import analyze_package_request, find_conversion_candidates
from ..errors import (
    ConversionError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)
from ..interfaces.booking_gateway import BookingGateway
from ..interfaces.catalog import PackageCatalog
from ..interfaces.session_store import ConversionSessionStore
from ..schemas import (
    AutoConversionMarkResponse,
    BookingConfirmation,
    BookingConversionResponse,
    Caller,
    ConversionAnalytics,
    ConversionCandidate,
    ConversionOption,
    ConversionPricingResponse,
    ConversionSession,
    ConversionsByType,
    ConversionStatus,
    ConversionType,
    MatchingAlgorithm,
    MatchingFilters,
    OptionType,
    PackageComponent,
    PackageMatchingResponse,
    PaymentMethod,
    PricingStrategy,
    RequestStatus,
    Role,
    SelectedOption,
    SelectOptionResponse,
    StartConversionResponse,
    TimelineEvent,
    TimeRange,
    TopPerformingMatch,
    TripRequest,
)
from .authorization import authorize, authorize_session_owner
from .matching_service import MatchingService
from .pricing_service import PricingService

S = ConversionStatus

# Allowed status changes; anything else is an InvalidTransitionError
TRANSITIONS: Dict[ConversionStatus, FrozenSet[ConversionStatus]] = {
    S.ANALYSIS_PENDING: frozenset({S.ANALYSIS_COMPLETE, S.MATCHING_IN_PROGRESS}),
    S.ANALYSIS_COMPLETE: frozenset({S.MATCHING_IN_PROGRESS}),
    S.MATCHING_IN_PROGRESS: frozenset({S.MATCHES_FOUND, S.CUSTOM_PACKAGE_REQUIRED}),
    S.MATCHES_FOUND: frozenset({S.MATCHING_IN_PROGRESS, S.PRICING_CALCULATED, S.READY_FOR_CONVERSION}),
    S.CUSTOM_PACKAGE_REQUIRED: frozenset({S.MATCHING_IN_PROGRESS, S.PRICING_CALCULATED, S.READY_FOR_CONVERSION}),
    S.PRICING_CALCULATED: frozenset({S.MATCHING_IN_PROGRESS, S.PRICING_CALCULATED, S.READY_FOR_CONVERSION}),
    S.READY_FOR_CONVERSION: frozenset({S.CUSTOMER_APPROVAL_PENDING}),
    S.CUSTOMER_APPROVAL_PENDING: frozenset({S.CUSTOMER_APPROVED, S.CUSTOMER_REJECTED, S.READY_FOR_CONVERSION}),
    S.CUSTOMER_APPROVED: frozenset({S.CONVERSION_IN_PROGRESS}),
    S.CUSTOMER_REJECTED: frozenset(),
    S.CONVERSION_IN_PROGRESS: frozenset({S.CONVERSION_COMPLETE, S.CONVERSION_FAILED}),
    S.CONVERSION_COMPLETE: frozenset(),
    S.CONVERSION_FAILED: frozenset({S.CONVERSION_IN_PROGRESS}),
}

NEXT_STEPS: Dict[ConversionStatus, List[str]] = {
    S.ANALYSIS_PENDING: ["Executar análise da solicitação", "Identificar preferências do cliente"],
    S.ANALYSIS_COMPLETE: ["Executar busca de correspondências", "Avaliar opções disponíveis"],
    S.MATCHES_FOUND: ["Revisar correspondências", "Calcular preços", "Selecionar melhor opção"],
    S.CUSTOM_PACKAGE_REQUIRED: ["Criar pacote personalizado", "Calcular preços customizados"],
    S.PRICING_CALCULATED: ["Revisar preços", "Selecionar opção final"],
    S.READY_FOR_CONVERSION: ["Enviar proposta ao cliente", "Aguardar aprovação"],
    S.CUSTOMER_APPROVAL_PENDING: ["Aguardar resposta do cliente"],
    S.CUSTOMER_APPROVED: ["Executar conversão final", "Criar reserva"],
    S.CONVERSION_FAILED: ["Verificar falha na reserva", "Tentar a conversão novamente"],
    S.CONVERSION_COMPLETE: ["Enviar confirmação", "Acompanhar cliente"],
}

ESTIMATED_COMPLETION: Dict[ConversionType, str] = {
    ConversionType.AUTOMATIC: "15-30 minutos",
    ConversionType.ASSISTED: "1-3 horas",
    ConversionType.MANUAL: "4-8 horas",
}

TIME_RANGE_DAYS = {
    TimeRange.LAST_7_DAYS: 7,
    TimeRange.LAST_30_DAYS: 30,
    TimeRange.LAST_90_DAYS: 90,
}

TOP_PERFORMING_LIMIT = 5


def next_steps_for(status: ConversionStatus) -> List[str]:
    return list(NEXT_STEPS.get(status, ["Revisar status da conversão"]))


def transition(session: ConversionSession, target: ConversionStatus) -> ConversionSession:
    """
    Move a session to `target` if the state machine allows it

    Raises:
        InvalidTransitionError: target not reachable from the current status
    """
    if target not in TRANSITIONS.get(session.status, frozenset()):
        raise InvalidTransitionError(
            f"Transição inválida: {session.status.value} -> {target.value}"
        )
    return session.model_copy(update={"status": target})


class ConversionService:
    """
    Conversion workflow for admins (master, partner, employee)

    Usage:
        service = ConversionService(catalog, store, matching, pricing, bookings)
        started = service.start_conversion_process(caller, "req_1", ConversionType.AUTOMATIC)
    """

    def __init__(
        self,
        catalog: PackageCatalog,
        session_store: ConversionSessionStore,
        matching_service: MatchingService,
        pricing_service: PricingService,
        booking_gateway: BookingGateway,
        auto_match_max_results: int = 5,
        auto_match_min_score: int = 60,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.catalog = catalog
        self.session_store = session_store
        self.matching_service = matching_service
        self.pricing_service = pricing_service
        self.booking_gateway = booking_gateway
        self.auto_match_max_results = auto_match_max_results
        self.auto_match_min_score = auto_match_min_score
        self.clock = clock

    # ============================================
    # Helpers
    # ============================================

    def _event(self, event: str, description: str, user_id: Optional[str] = None) -> TimelineEvent:
        return TimelineEvent(timestamp=self.clock(), event=event, description=description, user_id=user_id)

    def _record(
        self,
        session: ConversionSession,
        event: TimelineEvent,
        **updates
    ) -> ConversionSession:
        """Copy of the session with `updates` applied and one timeline event appended"""
        updates["timeline"] = session.timeline + [event]
        return session.model_copy(update=updates)

    def _load_owned(self, caller: Caller, session_id: str) -> ConversionSession:
        authorize(caller)
        session = self.session_store.load(session_id)
        if session is None:
            raise NotFoundError("Sessão de conversão não encontrada.")
        authorize_session_owner(caller, session)
        return session

    def _update_request_status(self, request_id: str, status: RequestStatus, notes: str) -> None:
        try:
            self.catalog.update_package_request_status(request_id, status, notes)
        except KeyError:
            raise NotFoundError("Solicitação de pacote não encontrada.")

    def _restore_request_status(self, request: TripRequest) -> None:
        """Put a request back to the status and notes it had before this step"""
        try:
            self.catalog.update_package_request_status(request.id, request.status, request.admin_notes or "")
        except Exception as e:
            logger.error(f"Could not restore request {request.id} to {request.status.value}: {e}")

    # ============================================
    # Start
    # ============================================

    def start_conversion_process(
        self,
        caller: Caller,
        request_id: str,
        conversion_type: ConversionType = ConversionType.ASSISTED
    ) -> StartConversionResponse:
        """
        Open (or return) the conversion session of a request

        Analysis is best-effort: when it fails the session stays at
        analysis_pending. Automatic conversions with a successful analysis
        also run hybrid matching right away.
        """
        conversion_type = ConversionType(conversion_type)
        try:
            role = authorize(caller)

            request = self.catalog.get_package_request_details(request_id)
            if request is None:
                raise NotFoundError("Solicitação de pacote não encontrada.")

            existing = self.session_store.find_by_request(request_id)
            if existing is not None:
                return self._already_started(existing)

            now = self.clock()
            try:
                analysis = analyze_package_request(request, self.catalog.get_all_packages(), now)
            except Exception as e:
                logger.warning(f"Analysis failed for request {request_id}, continuing without it: {e}")
                analysis = None

            session = ConversionSession(
                id=self.session_store.new_session_id(),
                request_id=request_id,
                admin_id=caller.user_id,
                conversion_type=conversion_type,
                status=S.ANALYSIS_COMPLETE if analysis else S.ANALYSIS_PENDING,
                analysis_result=analysis,
                timeline=[self._event(
                    "conversion_started",
                    f"Processo de conversão iniciado por {role.value}",
                    caller.user_id,
                )],
                created_at=now,
                updated_at=now,
            )

            if conversion_type == ConversionType.AUTOMATIC and analysis is not None:
                session = self._auto_match(session)

            stored, created = self.session_store.create(session)
            if not created:
                return self._already_started(stored)

        except ConversionError as e:
            logger.warning(f"start_conversion_process({request_id}) failed: {e.message}")
            return StartConversionResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"start_conversion_process({request_id}) crashed")
            return StartConversionResponse(success=False, message=f"Erro ao iniciar conversão: {e}")

        logger.info(f"Conversion {stored.id} started for {request_id} ({conversion_type.value}): {stored.status.value}")

        return StartConversionResponse(
            success=True,
            session_id=stored.id,
            status=stored.status,
            next_steps=next_steps_for(stored.status),
            estimated_completion_time=ESTIMATED_COMPLETION[conversion_type],
            message="Processo de conversão iniciado com sucesso.",
        )

    def _already_started(self, session: ConversionSession) -> StartConversionResponse:
        return StartConversionResponse(
            success=True,
            session_id=session.id,
            status=session.status,
            next_steps=next_steps_for(session.status),
            estimated_completion_time=ESTIMATED_COMPLETION[session.conversion_type],
            message="Conversão já em andamento.",
        )

    def _auto_match(self, session: ConversionSession) -> ConversionSession:
        try:
            result = self.matching_service.execute_matching(
                session.request_id,
                MatchingAlgorithm.HYBRID,
                max_results=self.auto_match_max_results,
                min_score=self.auto_match_min_score,
            )
        except Exception as e:
            logger.warning(f"Automatic matching failed for {session.request_id}, left for manual matching: {e}")
            return session

        matching = transition(session, S.MATCHING_IN_PROGRESS)
        found = transition(matching, S.MATCHES_FOUND if result.matches else S.CUSTOM_PACKAGE_REQUIRED)
        return self._record(
            found,
            self._event("matching_complete", f"{len(result.matches)} correspondências encontradas"),
            matching_result=result,
        )

    # ============================================
    # Status
    # ============================================

    def get_conversion_status(
        self,
        caller: Caller,
        session_id: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Optional[ConversionSession]:
        """
        Look a session up by id, or by request id

        Raises:
            UnauthorizedError: caller is not an admin
        """
        authorize(caller)
        if session_id:
            return self.session_store.load(session_id)
        if request_id:
            return self.session_store.find_by_request(request_id)
        return None

    # ============================================
    # Matching
    # ============================================

    def execute_package_matching(
        self,
        caller: Caller,
        session_id: str,
        algorithm: MatchingAlgorithm = MatchingAlgorithm.HYBRID,
        filters: Optional[MatchingFilters] = None
    ) -> PackageMatchingResponse:
        """Re-run matching for the session's request, honouring score, size and price filters"""
        filters = filters or MatchingFilters()
        try:
            session = self._load_owned(caller, session_id)
            in_progress = transition(session, S.MATCHING_IN_PROGRESS)

            result = self.matching_service.execute_matching(
                session.request_id,
                algorithm,
                max_results=filters.max_results,
                min_score=filters.min_score,
                price_range=filters.price_range,
            )

            found = transition(in_progress, S.MATCHES_FOUND if result.matches else S.CUSTOM_PACKAGE_REQUIRED)
            self.session_store.save(self._record(
                found,
                self._event(
                    "matching_complete",
                    f"{len(result.matches)} correspondências encontradas ({result.algorithm.value})",
                    caller.user_id,
                ),
                matching_result=result,
            ))
        except ConversionError as e:
            logger.warning(f"execute_package_matching({session_id}) failed: {e.message}")
            return PackageMatchingResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"execute_package_matching({session_id}) crashed")
            return PackageMatchingResponse(success=False, message=f"Erro ao executar correspondência: {e}")

        return PackageMatchingResponse(
            success=True,
            matches=result.matches,
            metrics=result.performance_metrics,
            message=f"{len(result.matches)} correspondências encontradas.",
        )

    # ============================================
    # Pricing
    # ============================================

    def calculate_conversion_pricing(
        self,
        caller: Caller,
        session_id: str,
        option: ConversionOption,
        pricing_strategy: PricingStrategy = PricingStrategy.DYNAMIC
    ) -> ConversionPricingResponse:
        """
        Price one conversion option

        - existing_package: the catalog package's base price
        - custom_package: the given custom components
        - modified_package: package price plus any extra components
        """
        try:
            session = self._load_owned(caller, session_id)
            components = self._components_for(option)
            priced = transition(session, S.PRICING_CALCULATED)

            pricing = self.pricing_service.calculate_dynamic_pricing(
                session.request_id, components, pricing_strategy
            )

            self.session_store.save(self._record(
                priced,
                self._event(
                    "pricing_calculated",
                    f"Preço calculado para {option.type.value}: R$ {pricing.recommended_price:.2f} "
                    f"({pricing.strategy.value})",
                    caller.user_id,
                ),
                pricing_result=pricing,
            ))
        except ConversionError as e:
            logger.warning(f"calculate_conversion_pricing({session_id}) failed: {e.message}")
            return ConversionPricingResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"calculate_conversion_pricing({session_id}) crashed")
            return ConversionPricingResponse(success=False, message=f"Erro ao calcular preços: {e}")

        return ConversionPricingResponse(
            success=True,
            pricing=pricing,
            message="Preços calculados com sucesso.",
        )

    def _components_for(self, option: ConversionOption) -> List[PackageComponent]:
        if option.type == OptionType.CUSTOM_PACKAGE:
            if not option.custom_components:
                raise InvalidRequestError("Pacote personalizado precisa de componentes.")
            return list(option.custom_components)

        if not option.package_id:
            raise InvalidRequestError("Informe o pacote a ser precificado.")
        package = self.catalog.get_package_by_id(option.package_id)
        if package is None:
            raise NotFoundError("Pacote não encontrado.")

        components = [PackageComponent(type="package", base_price=package.base_price, quantity=1)]
        if option.type == OptionType.MODIFIED_PACKAGE and option.custom_components:
            components.extend(option.custom_components)
        return components

    # ============================================
    # Selection
    # ============================================

    def select_conversion_option(
        self,
        caller: Caller,
        session_id: str,
        selected_option: SelectedOption
    ) -> SelectOptionResponse:
        """
        Record the chosen option and hand the proposal to the customer

        The request is approved before the session moves on; if the session
        write then fails, the request goes back to its previous status.
        """
        try:
            session = self._load_owned(caller, session_id)

            if selected_option.type != OptionType.CUSTOM_PACKAGE:
                if not selected_option.package_id:
                    raise InvalidRequestError("Informe o pacote selecionado.")
                if self.catalog.get_package_by_id(selected_option.package_id) is None:
                    raise NotFoundError("Pacote não encontrado.")

            ready = transition(session, S.READY_FOR_CONVERSION)
            pending = transition(ready, S.CUSTOMER_APPROVAL_PENDING)

            request = self.catalog.get_package_request_details(session.request_id)
            if request is None:
                raise NotFoundError("Solicitação de pacote não encontrada.")

            self._update_request_status(
                session.request_id,
                RequestStatus.APPROVED,
                f"Conversão em andamento - {selected_option.type.value} selecionado por "
                f"R$ {selected_option.final_price:.2f}",
            )

            description = (
                f"Opção selecionada: {selected_option.type.value} - "
                f"Preço: R$ {selected_option.final_price:.2f}"
            )
            try:
                self.session_store.save(self._record(
                    pending,
                    self._event("option_selected", description, caller.user_id),
                    selected_option=selected_option,
                    custom_package_id=selected_option.custom_package_id or session.custom_package_id,
                ))
            except Exception:
                self._restore_request_status(request)
                raise
        except ConversionError as e:
            logger.warning(f"select_conversion_option({session_id}) failed: {e.message}")
            return SelectOptionResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"select_conversion_option({session_id}) crashed")
            return SelectOptionResponse(success=False, message=f"Erro ao selecionar opção: {e}")

        logger.info(f"Session {session_id}: {selected_option.type.value} selected, awaiting customer")

        return SelectOptionResponse(
            success=True,
            next_step="customer_approval",
            message="Opção selecionada. Aguardando aprovação do cliente.",
        )

    # ============================================
    # Booking
    # ============================================

    def execute_conversion_to_booking(
        self,
        caller: Caller,
        session_id: str,
        customer_approval: bool,
        payment_method: PaymentMethod = PaymentMethod.CARD
    ) -> BookingConversionResponse:
        """
        Turn the selected option into a booking

        A customer rejection returns right away: no session read, no booking,
        no request status change.
        """
        try:
            authorize(caller)
        except ConversionError as e:
            return BookingConversionResponse(success=False, message=e.message)

        if not customer_approval:
            logger.info(f"Session {session_id}: customer did not approve, conversion cancelled")
            return BookingConversionResponse(
                success=False,
                message="Conversão cancelada - cliente não aprovou.",
            )

        try:
            session = self._load_owned(caller, session_id)
            if session.selected_option is None:
                raise InvalidRequestError("Sessão inválida ou opção não selecionada.")

            if session.status == S.CONVERSION_FAILED:
                in_progress = transition(session, S.CONVERSION_IN_PROGRESS)
            else:
                in_progress = transition(transition(session, S.CUSTOMER_APPROVED), S.CONVERSION_IN_PROGRESS)

            # Claim the session before booking so a concurrent attempt conflicts
            in_progress = self.session_store.save(in_progress)
        except ConversionError as e:
            logger.warning(f"execute_conversion_to_booking({session_id}) failed: {e.message}")
            return BookingConversionResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"execute_conversion_to_booking({session_id}) crashed")
            return BookingConversionResponse(success=False, message=f"Erro ao executar conversão: {e}")

        if in_progress.booking_id:
            # An earlier attempt booked but could not finish; reuse its booking
            booking = BookingConfirmation(
                booking_id=in_progress.booking_id,
                confirmation_code=in_progress.confirmation_code,
            )
            logger.info(f"Session {session_id}: reusing booking {booking.booking_id}")
        else:
            create_booking = {
                OptionType.EXISTING_PACKAGE: self.booking_gateway.create_package_booking,
                OptionType.CUSTOM_PACKAGE: self.booking_gateway.create_custom_package_booking,
                OptionType.MODIFIED_PACKAGE: self.booking_gateway.create_modified_package_booking,
            }[in_progress.selected_option.type]

            try:
                booking = create_booking(in_progress, PaymentMethod(payment_method))
            except Exception as e:
                logger.error(f"Booking creation failed for session {session_id}: {e}")
                return self._fail_conversion(caller, in_progress, e)

        try:
            self._update_request_status(
                in_progress.request_id,
                RequestStatus.COMPLETED,
                f"Convertido para reserva {booking.booking_id}",
            )
            self.session_store.save(self._record(
                transition(in_progress, S.CONVERSION_COMPLETE),
                self._event(
                    "conversion_complete",
                    f"Reserva {booking.booking_id} criada ({PaymentMethod(payment_method).value})",
                    caller.user_id,
                ),
                booking_id=booking.booking_id,
                confirmation_code=booking.confirmation_code,
            ))
        except Exception as e:
            logger.error(f"Booking {booking.booking_id} created but session {session_id} not completed: {e}")
            return self._fail_conversion(caller, in_progress, e, booking)

        logger.info(f"Session {session_id} converted to booking {booking.booking_id}")

        return BookingConversionResponse(
            success=True,
            booking_id=booking.booking_id,
            confirmation_code=booking.confirmation_code,
            message="Conversão concluída com sucesso!",
        )

    def _fail_conversion(
        self,
        caller: Caller,
        session: ConversionSession,
        error: Exception,
        booking: Optional[BookingConfirmation] = None
    ) -> BookingConversionResponse:
        """
        Move the session to conversion_failed

        A booking that already exists is kept on the session so a retry
        finishes it instead of booking twice.
        """
        message = f"Erro ao executar conversão: {error}"
        updates = {}
        if booking is not None:
            updates = {"booking_id": booking.booking_id, "confirmation_code": booking.confirmation_code}

        try:
            self.session_store.save(self._record(
                transition(session, S.CONVERSION_FAILED),
                self._event("conversion_failed", message, caller.user_id),
                **updates,
            ))
        except Exception as e:
            logger.error(f"Could not mark session {session.id} as failed: {e}")

        return BookingConversionResponse(
            success=False,
            booking_id=booking.booking_id if booking else None,
            confirmation_code=booking.confirmation_code if booking else None,
            message=message,
        )

    # ============================================
    # Auto-conversion candidates
    # ============================================

    def get_conversion_candidates(
        self,
        caller: Caller,
        min_score: int = 60,
        limit: int = 20
    ) -> List[ConversionCandidate]:
        """
        Pending requests whose quick score reaches `min_score`, best first

        Only the oldest `limit * 2` pending requests are screened.

        Raises:
            UnauthorizedError: caller is not an admin
        """
        authorize(caller)
        pending = self.catalog.list_package_requests(RequestStatus.PENDING, limit * 2)
        return find_conversion_candidates(pending, self.catalog.get_all_packages(), min_score, limit)

    def mark_for_auto_conversion(
        self,
        caller: Caller,
        request_id: str,
        selected_package_id: str,
        conversion_notes: Optional[str] = None
    ) -> AutoConversionMarkResponse:
        """Approve a request for automatic conversion with the given package"""
        try:
            authorize(caller)
            if self.catalog.get_package_request_details(request_id) is None:
                raise NotFoundError("Solicitação de pacote não encontrada.")
            if self.catalog.get_package_by_id(selected_package_id) is None:
                raise NotFoundError("Pacote não encontrado.")

            notes = f"Marcado para conversão automática - Pacote: {selected_package_id}"
            if conversion_notes:
                notes += f"\nNotas: {conversion_notes}"
            self._update_request_status(request_id, RequestStatus.APPROVED, notes)
        except ConversionError as e:
            logger.warning(f"mark_for_auto_conversion({request_id}) failed: {e.message}")
            return AutoConversionMarkResponse(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"mark_for_auto_conversion({request_id}) crashed")
            return AutoConversionMarkResponse(success=False, message=f"Erro ao marcar para conversão: {e}")

        logger.info(f"Request {request_id} marked for automatic conversion with {selected_package_id}")

        return AutoConversionMarkResponse(
            success=True,
            message="Solicitação marcada para conversão automática.",
            conversion_id=f"CONV-{int(time.time() * 1000)}",
        )

    # ============================================
    # Analytics
    # ============================================

    def get_conversion_analytics(
        self,
        caller: Caller,
        time_range: TimeRange = TimeRange.LAST_30_DAYS,
        partner_id: Optional[str] = None
    ) -> ConversionAnalytics:
        """
        Aggregate stats over sessions started within `time_range`

        Non-master admins only see their own sessions; a master may narrow
        the report to one admin with `partner_id`.

        Raises:
            UnauthorizedError: caller is not an admin
        """
        role = authorize(caller)
        if role != Role.MASTER:
            partner_id = caller.user_id

        since = self.clock() - timedelta(days=TIME_RANGE_DAYS[TimeRange(time_range)])
        sessions = [
            s for s in self.session_store.list_sessions()
            if s.created_at >= since and (partner_id is None or s.admin_id == partner_id)
        ]
        completed = [s for s in sessions if s.status == S.CONVERSION_COMPLETE]

        durations = [
            (_completed_at(s) - s.created_at).total_seconds() / 3600
            for s in completed
        ]
        by_type = Counter(s.selected_option.type for s in completed if s.selected_option)

        logger.info(f"Analytics for {time_range}: {len(completed)}/{len(sessions)} converted")

        return ConversionAnalytics(
            total_conversions=len(completed),
            conversion_rate=round(len(completed) / len(sessions) * 100, 2) if sessions else 0.0,
            average_conversion_time=round(sum(durations) / len(durations), 2) if durations else 0.0,
            revenue_generated=sum(s.selected_option.final_price for s in completed if s.selected_option),
            conversions_by_type=ConversionsByType(
                existing_package=by_type[OptionType.EXISTING_PACKAGE],
                custom_package=by_type[OptionType.CUSTOM_PACKAGE],
                modified_package=by_type[OptionType.MODIFIED_PACKAGE],
            ),
            top_performing_matches=self._top_performing(sessions),
            sessions_by_status=dict(Counter(s.status.value for s in sessions)),
        )

    def _top_performing(self, sessions: List[ConversionSession]) -> List[TopPerformingMatch]:
        """Packages ranked by completed conversions, with conversion rate over sessions that chose them"""
        selected = defaultdict(int)
        converted = defaultdict(int)
        for s in sessions:
            if s.selected_option and s.selected_option.package_id:
                selected[s.selected_option.package_id] += 1
                if s.status == S.CONVERSION_COMPLETE:
                    converted[s.selected_option.package_id] += 1

        ranked = sorted(converted.items(), key=lambda item: item[1], reverse=True)[:TOP_PERFORMING_LIMIT]

        top = []
        for package_id, conversions in ranked:
            package = self.catalog.get_package_by_id(package_id)
            top.append(TopPerformingMatch(
                package_id=package_id,
                package_name=package.name if package else package_id,
                conversions=conversions,
                conversion_rate=round(conversions / selected[package_id] * 100, 2),
            ))
        return top


def _completed_at(session: ConversionSession) -> datetime:
    for event in reversed(session.timeline):
        if event.event == "conversion_complete":
            return event.timestamp
    return session.updated_at
