"""Engine construction from the `engine` configuration option."""

import importlib
import logging

from ..config import AcrConfig
from ..errors import EngineLoadError
from .base import AnalysisEngine

logger = logging.getLogger(__name__)


def load_engine(config: AcrConfig) -> AnalysisEngine:
    """Import and instantiate the engine class named by `config.engine`.

    Raises:
        EngineLoadError: If the module or class cannot be imported, is not an
            AnalysisEngine subclass, or fails to initialize
    """
    module_name, _, class_name = config.engine.partition(":")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineLoadError(f"cannot import engine module '{module_name}': {e}") from e

    engine_cls = getattr(module, class_name, None)
    if not isinstance(engine_cls, type) or not issubclass(engine_cls, AnalysisEngine):
        raise EngineLoadError(
            f"'{config.engine}' does not name an AnalysisEngine subclass"
        )

    try:
        engine = engine_cls(config)
    except Exception as e:
        raise EngineLoadError(f"engine '{config.engine}' failed to start: {e}") from e

    logger.info(f"Loaded analysis engine {engine_cls.__name__}")
    return engine
