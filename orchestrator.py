from typing import List, Optional, Sequence

from dialogue_instruct import get_instructions, get_opening_utterance, phrase
from errors import (
    DialogueEngineError,
    IllegalTransitionError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from interface import DialogueInterface, FollowUp, TelephonyInterface
from models import (
    Job,
    JobStatus,
    JobView,
    Language,
    OrderItem,
    ProviderCallState,
    Supplier,
)
from settings import settings
from state_machine import JobEvent, can_transition, transition
from state_manager import JobStateManager
from supplier_matcher import select_supplier
from termination_parser import parse_reply
from utils import print_debug

NEUTRAL_ERROR_MESSAGE = "The call could not be completed."


class CallOrchestrator:
    """
    Owns every job mutation.

    Conversation handlers hold the job lock from entry to exit, across the
    dialogue and telephony awaits, so turns for one job never interleave.
    end_call and on_provider_status only write the status in a single step
    and do not wait for the lock; a turn in flight re-checks for a terminal
    status after each await. The read model takes no lock.
    """

    def __init__(
        self,
        jobs: JobStateManager,
        telephony: TelephonyInterface,
        dialogue: DialogueInterface,
        marker: Optional[str] = None,
        default_language: Optional[str] = None,
    ) -> None:
        self._jobs = jobs
        self._telephony = telephony
        self._dialogue = dialogue
        self._marker = marker or settings.TERMINATION_MARKER
        self._default_language = Language(default_language or settings.DEFAULT_LANGUAGE)

    @property
    def jobs(self) -> JobStateManager:
        return self._jobs

    async def initiate_job(
        self,
        items: Sequence[OrderItem],
        specialty: str,
        supplier_pool: Sequence[Supplier],
        language: Optional[Language] = None,
    ) -> str:
        if not items:
            raise ValidationError("At least one item is required")
        if not specialty:
            raise ValidationError("A supplier specialty is required")
        if not supplier_pool:
            raise ValidationError("The supplier pool is empty")

        supplier = select_supplier(specialty, supplier_pool)
        job = self._jobs.add(
            Job(
                supplier = supplier,
                items = list(items),
                language = language or self._default_language,
            )
        )
        print_debug(f"Job {job.id} created for supplier {supplier.id} ({supplier.phone})")

        async with self._jobs.lock(job.id):
            try:
                job.call_provider_reference = await self._telephony.place_call(supplier.phone, job.conference)
            except ProviderError as e:
                print_debug(f"Call placement failed for job {job.id}: {e}", log_level = "error")
                self._fail(job, str(e))
                return job.id
            if job.status.is_terminal:
                # 発信中に end_call された
                await self._hang_up(job)
        return job.id

    async def on_participant_joined(self, job_id: str) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            print_debug(f"Join event for unknown job {job_id}", log_level = "error")
            return
        async with self._jobs.lock(job_id):
            if job.has_agent_joined or job.status.is_terminal:
                print_debug(f"Duplicate join event ignored for job {job_id}", log_level = "debug")
                return
            job.has_agent_joined = True
            if not self._advance(job, JobEvent.PARTICIPANT_JOINED):
                return
            opening = get_opening_utterance(job.items, job.language)
            job.add_agent_turn(opening)
            await self._speak(job, opening, FollowUp.LISTEN)

    async def on_prompt_played(self, job_id: str, follow_up: FollowUp) -> None:
        job = self._get(job_id)
        async with self._jobs.lock(job_id):
            if follow_up == FollowUp.HANG_UP:
                await self._hang_up(job)
                return
            if job.status.is_terminal or not self._advance(job, JobEvent.PROMPT_PLAYED):
                return
            try:
                await self._telephony.listen(
                    job.call_provider_reference, job.supplier.phone, job.conference, job.language
                )
            except ProviderError as e:
                print_debug(f"Could not start listening for job {job_id}: {e}", log_level = "error")
                self._fail(job, str(e))
                await self._hang_up(job)

    async def on_prompt_failed(self, job_id: str) -> None:
        job = self._get(job_id)
        async with self._jobs.lock(job_id):
            if not job.status.is_terminal:
                self._fail(job, "Provider failed to play a prompt")
            await self._hang_up(job)

    async def on_speech_received(self, job_id: str, text: str) -> None:
        job = self._get(job_id)
        async with self._jobs.lock(job_id):
            if job.status.is_terminal:
                print_debug(f"Speech ignored for finished job {job_id}: {text}", log_level = "debug")
                return
            if not self._advance(job, JobEvent.SPEECH_RECEIVED):
                return
            job.add_supplier_turn(text)
            print_debug(f"Supplier said on job {job_id}: {text}")

            instruction = get_instructions(job.items, job.language, self._marker)
            try:
                reply = await self._dialogue.generate_reply(list(job.conversation_history), instruction)
            except DialogueEngineError as e:
                print_debug(f"Dialogue engine failed for job {job_id}: {e}", log_level = "error")
                if job.status.is_terminal:
                    return
                apology = phrase(job.language, "apology")
                job.add_agent_turn(apology)
                self._fail(job, str(e))
                await self._speak(job, apology, FollowUp.HANG_UP)
                return

            # end_call が割り込んだ場合は応答を捨てる
            if job.status.is_terminal:
                print_debug(f"Reply discarded, job {job_id} already {job.status.value}", log_level = "debug")
                return

            parsed = parse_reply(reply, self._marker)
            if parsed.is_final:
                closing = parsed.text or phrase(job.language, "closing")
                if parsed.extracted_data is not None:
                    job.record_extracted_data(parsed.extracted_data)
                job.add_agent_turn(closing)
                self._advance(job, JobEvent.CONVERSATION_FINISHED)
                print_debug(f"Job {job_id} finished, extracted: {job.extracted_data}")
                await self._speak(job, closing, FollowUp.HANG_UP)
            else:
                job.add_agent_turn(parsed.text)
                self._advance(job, JobEvent.REPLY_READY)
                await self._speak(job, parsed.text, FollowUp.LISTEN)

    async def on_reply_timeout(self, job_id: str) -> None:
        job = self._get(job_id)
        async with self._jobs.lock(job_id):
            if job.status != JobStatus.LISTENING_FOR_RESPONSE:
                print_debug(f"Reply timeout ignored for job {job_id} while {job.status.value}", log_level = "debug")
                return
            # 無応答のまま放置しない
            goodbye = phrase(job.language, "no_response")
            job.add_agent_turn(goodbye)
            self._fail(job, "Supplier did not reply within the silence window")
            await self._speak(job, goodbye, FollowUp.HANG_UP)

    async def on_provider_status(self, job_id: str, provider_state: ProviderCallState) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            print_debug(f"Status {provider_state.value} for unknown job {job_id}", log_level = "error")
            return
        if job.status.is_terminal:
            return
        if provider_state.is_terminal:
            self._advance(job, JobEvent.CALL_TERMINATED)
            return
        event = JobEvent.RINGING if provider_state == ProviderCallState.RINGING else JobEvent.ANSWERED
        if can_transition(job.status, event):
            self._advance(job, event)

    async def end_call(self, job_id: str) -> bool:
        """
        End a call on user request.

        Returns False when the provider hang-up failed; the job is ended
        regardless.
        """
        job = self._get(job_id)
        if job.status.is_terminal:
            return True
        # status を先に確定させる。進行中のターンは await 後にこれを見て応答を捨てる
        self._advance(job, JobEvent.CALL_TERMINATED)
        if not job.call_provider_reference:
            return True
        try:
            await self._telephony.hang_up(job.call_provider_reference)
        except ProviderError as e:
            print_debug(f"Hang-up failed for job {job_id}, job ended anyway: {e}", log_level = "error")
            return False
        return True

    def get_job_view(self, job_id: str) -> JobView:
        return JobView.from_job(self._get(job_id))

    def list_job_views(self) -> List[JobView]:
        return [JobView.from_job(job) for job in self._jobs.list()]

    def _get(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def _advance(self, job: Job, event: JobEvent) -> bool:
        try:
            new_status = transition(job.status, event)
        except IllegalTransitionError as e:
            print_debug(f"Job {job.id}: {e}, ignored", log_level = "debug")
            return False
        if new_status != job.status:
            print_debug(f"Job {job.id}: {job.status.value} -> {new_status.value} ({event.value})")
        job.status = new_status
        return True

    def _fail(self, job: Job, reason: str) -> None:
        if self._advance(job, JobEvent.FAILURE):
            job.error_message = NEUTRAL_ERROR_MESSAGE
            print_debug(f"Job {job.id} failed: {reason}", log_level = "error")

    async def _speak(self, job: Job, text: str, follow_up: FollowUp) -> None:
        if not job.call_provider_reference:
            print_debug(f"No call reference for job {job.id}, cannot speak", log_level = "error")
            self._fail(job, "Missing call reference")
            return
        try:
            await self._telephony.speak(job.call_provider_reference, text, job.conference, follow_up, job.language)
        except ProviderError as e:
            print_debug(f"Could not speak on job {job.id}: {e}", log_level = "error")
            self._fail(job, str(e))
            await self._hang_up(job)

    async def _hang_up(self, job: Job) -> None:
        if not job.call_provider_reference:
            return
        try:
            await self._telephony.hang_up(job.call_provider_reference)
        except ProviderError as e:
            print_debug(f"Hang-up failed for job {job.id}: {e}", log_level = "error")
