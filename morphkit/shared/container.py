# morphkit/shared/container.py
from dependency_injector import containers, providers

from morphkit.shared.config import RuntimeConfig, settings

# --- Adapters ---
from morphkit.adapters.packs.cache import PackCache
from morphkit.adapters.packs.loader import PackLoader
from morphkit.adapters.transport import create_transport
from morphkit.workers.host import TransducerHost

# --- Services ---
from morphkit.services.channel import WorkerChannel
from morphkit.services.runtime import MorphRuntime, RuleRuntime


class Container(containers.DeclarativeContainer):
    """
    Dependency Injection Container.
    Connects the pack/transport adapters to the runtime services.
    """

    # 1. Configuration
    config = providers.Object(settings)

    runtime_config = providers.Singleton(RuntimeConfig.from_settings, config)

    # 2. Infrastructure Gateways

    # Pack fetching (shared by every host built in this process)
    pack_cache = providers.Singleton(PackCache, directory=settings.PACK_CACHE_DIR)
    pack_loader = providers.Singleton(PackLoader, cache=pack_cache, timeout=settings.FETCH_TIMEOUT_SEC)

    # Worker-side handler (built inside the worker process)
    transducer_host = providers.Factory(TransducerHost, loader=pack_loader)

    # Host-side channel; the transport kind is read when the channel starts
    transport_factory = providers.Callable(
        lambda cfg: (lambda: create_transport(cfg.transport)),
        runtime_config,
    )
    worker_channel = providers.Singleton(WorkerChannel, transport_factory=transport_factory)

    # 3. Runtimes
    rule_runtime = providers.Singleton(RuleRuntime)

    morph_runtime = providers.Singleton(
        MorphRuntime,
        config=runtime_config,
        channel=worker_channel,
        rules=rule_runtime,
    )


# Global Container Instance
container = Container()
