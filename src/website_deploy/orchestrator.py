"""Website deployment orchestrator.

Drives one run through the lifecycle entry points, which the hosting
integration calls in this fixed order:

  init()   -> preconditions + hosting provisioning (concurrently)
  build()  -> dependency install, build command, artifact staging
  deploy() -> concurrent uploads, site URL, staging cleanup

Any failure moves the run to ``failed`` and propagates unchanged. Only
dependency install and cleanup are best effort: their outcomes are logged
and discarded. A failed or finished orchestrator is not reusable;
construct a new one to retry from scratch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from .build.builder import DEFAULT_EXCLUDE, DEFAULT_INCLUDE, StaticBuilder
from .build.commands import install_dependencies, run_build_command
from .cloud.client import CloudClient
from .concurrency import gather_fail_fast
from .deploy.dispatcher import DeploymentDispatcher, TransferClient
from .errors import ConfigError, InvalidPhaseTransition, WebsiteDeployError
from .models import Artifact, DeploymentOutcome, HostingResource, StepOutcome
from .observability.logging import run_id_ctx
from .observability.metrics import DEPLOY_PHASE_DURATION_SECONDS, DEPLOY_PHASES_TOTAL
from .provisioning.hosting import HostingApi, HostingProvisioner, SleepFn
from .provisioning.phases import (
    DeploymentRun,
    Phase,
    enter_phase,
    new_run,
    record_built,
    record_initialized,
    transition_to_failed,
)
from .provisioning.preconditions import EnvironmentLookup, PreconditionChecker
from .settings import DeploySettings, WebsiteInputs, resolve_inputs

logger = logging.getLogger(__name__)

HOSTING_RESOURCE_TYPE = 'CloudBase::StaticStore'


def site_url(domain: str, cloud_path: str) -> str:
    """Public URL of the deployed site: ``https://{domain}{cloud_path}``."""
    path = cloud_path if cloud_path.startswith('/') else f'/{cloud_path}'
    return f'https://{domain.rstrip("/")}{path}'


class WebsiteOrchestrator:
    """Provision static hosting, build the site, and deploy it."""

    def __init__(
        self,
        *,
        settings: DeploySettings,
        environments: EnvironmentLookup,
        hosting: HostingApi,
        transfer: TransferClient,
        inputs: WebsiteInputs | Mapping[str, Any] | None = None,
        builder: StaticBuilder | None = None,
        cancel_event: asyncio.Event | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        errors = settings.validate()
        if errors:
            raise ConfigError('; '.join(errors), env_id=settings.env_id or None)

        self.settings = settings
        self.inputs = inputs if isinstance(inputs, WebsiteInputs) else resolve_inputs(inputs)
        self.project_path = settings.project_path

        self._checker = PreconditionChecker(environments)
        self._provisioner = HostingProvisioner(
            hosting,
            poll_delay_seconds=settings.poll_delay_seconds,
            max_attempts=settings.max_poll_attempts,
            strict_lookup=settings.strict_lookup,
            cancel_event=cancel_event,
            sleep=sleep,
        )
        self._builder = builder or StaticBuilder(
            project_path=self.project_path,
            copy_root=self.project_path / self.inputs.output_path,
            ignore=self.inputs.ignore,
        )
        self._dispatcher = DeploymentDispatcher(
            transfer,
            env_id=settings.env_id,
            max_concurrency=settings.max_concurrency,
        )
        self._run = new_run(env_id=settings.env_id)

    @classmethod
    def for_cloud_client(
        cls,
        client: CloudClient,
        *,
        settings: DeploySettings,
        inputs: WebsiteInputs | Mapping[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> WebsiteOrchestrator:
        """Wire one control-plane client in as all three collaborators."""
        return cls(
            settings=settings,
            environments=client,
            hosting=client,
            transfer=client,
            inputs=inputs,
            cancel_event=cancel_event,
        )

    @property
    def run_state(self) -> DeploymentRun:
        """Current immutable snapshot of the run."""
        return self._run

    # ── Lifecycle ────────────────────────────────────────────────

    async def init(self) -> HostingResource:
        """Check preconditions and ensure hosting is ready, concurrently."""
        env_id = self.settings.env_id
        async with self._phase(Phase.INITIALIZING):
            logger.info(
                'Static hosting will be enabled automatically; '
                'environment %s must use postpaid (usage-based) billing',
                env_id,
                extra={'env_id': env_id},
            )
            logger.info(
                'Site resources will be deployed under %s',
                self.inputs.cloud_path,
                extra={'env_id': env_id, 'cloud_path': self.inputs.cloud_path},
            )
            environment, hosting = await gather_fail_fast([
                self._checker.check(env_id),
                self._provisioner.ensure_ready(env_id),
            ])
            self._run = record_initialized(
                self._run,
                environment=environment,
                hosting=hosting,
            )
        return hosting

    async def build(self) -> tuple[Artifact, ...]:
        """Install dependencies, run the build command, and stage artifacts."""
        if self._run.phase is not Phase.INITIALIZING or self._run.site_domain is None:
            raise InvalidPhaseTransition(self._run.phase.value, Phase.BUILDING.value)

        async with self._phase(Phase.BUILDING):
            self._log_step(await install_dependencies(self.project_path))

            if self.inputs.build_command:
                await run_build_command(self.inputs.build_command, self.project_path)

            artifacts = await asyncio.to_thread(
                self._builder.build,
                list(DEFAULT_INCLUDE),
                list(DEFAULT_EXCLUDE),
                destination_base=self.inputs.cloud_path,
            )
            self._run = record_built(self._run, artifacts=tuple(artifacts))
        return self._run.artifacts or ()

    async def deploy(self) -> DeploymentOutcome:
        """Upload every artifact, report the site URL, and clean up."""
        run = self._run
        if run.phase is not Phase.BUILDING or run.artifacts is None:
            raise InvalidPhaseTransition(run.phase.value, Phase.DEPLOYING.value)
        domain = run.site_domain
        if domain is None:
            raise InvalidPhaseTransition(run.phase.value, Phase.DEPLOYING.value)

        async with self._phase(Phase.DEPLOYING):
            results = await self._dispatcher.deploy_all(run.artifacts)

            url = site_url(domain, self.inputs.cloud_path)
            logger.info(
                'Website deployed: %s',
                url,
                extra={'env_id': run.env_id, 'url': url, 'artifacts': len(results)},
            )

            self._log_step(await asyncio.to_thread(self._builder.clean))
            self._run = enter_phase(self._run, Phase.DONE)
        return DeploymentOutcome(results=tuple(results), url=url)

    async def run(self) -> DeploymentOutcome:
        """Run init, build and deploy in order."""
        await self.init()
        await self.build()
        return await self.deploy()

    def compile_template(self) -> dict[str, Any]:
        """Declarative resource template for the hosting resource."""
        return {
            'EnvType': 'PostPay',
            'Resources': {
                'Website': {
                    'Type': HOSTING_RESOURCE_TYPE,
                    'Properties': {
                        'Description': (
                            'Static web hosting for HTML, CSS, JavaScript, '
                            'fonts, and other static assets.'
                        ),
                        'OutputPath': self.inputs.output_path,
                        'CloudPath': self.inputs.cloud_path,
                        'Ignore': sorted(self.inputs.ignore),
                    },
                },
            },
        }

    # ── Internals ────────────────────────────────────────────────

    @asynccontextmanager
    async def _phase(self, phase: Phase) -> AsyncIterator[None]:
        """Enter ``phase``; on any error record ``failed`` and re-raise."""
        self._run = enter_phase(self._run, phase)
        token = run_id_ctx.set(self._run.run_id)
        started = time.monotonic()
        logger.debug(
            'Entering phase %s',
            phase.value,
            extra={'env_id': self._run.env_id, 'phase': phase.value},
        )
        try:
            yield
        except BaseException as exc:
            code = exc.code if isinstance(exc, WebsiteDeployError) else type(exc).__name__
            self._run = transition_to_failed(
                self._run,
                error_code=code,
                error_detail=str(exc) or type(exc).__name__,
            )
            DEPLOY_PHASES_TOTAL.labels(phase=phase.value, outcome='failed').inc()
            logger.error(
                'Phase %s failed: %s',
                phase.value,
                exc,
                extra={'env_id': self._run.env_id, 'phase': phase.value, 'error_code': code},
            )
            raise
        else:
            DEPLOY_PHASES_TOTAL.labels(phase=phase.value, outcome='ok').inc()
        finally:
            DEPLOY_PHASE_DURATION_SECONDS.labels(phase=phase.value).observe(
                time.monotonic() - started,
            )
            run_id_ctx.reset(token)

    def _log_step(self, outcome: StepOutcome) -> None:
        if outcome.ok:
            logger.debug(
                'Step %s finished %s',
                outcome.name,
                outcome.detail,
                extra={'env_id': self._run.env_id, 'step': outcome.name},
            )
            return
        logger.warning(
            'Best-effort step %s failed: %s',
            outcome.name,
            outcome.detail,
            extra={'env_id': self._run.env_id, 'step': outcome.name},
        )
