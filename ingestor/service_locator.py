"""Service locator for pipeline components shared by routes and the app lifecycle."""

from typing import Optional

from ingestor.dispatch_loop import DispatchLoop
from ingestor.services.checkpoint_store import CheckpointStore
from ingestor.services.lifecycle import LifecycleManager
from ingestor.settings import SettingsStore
from ingestor.sources import DirectorySource

_checkpoint_store: Optional[CheckpointStore] = None
_lifecycle: Optional[LifecycleManager] = None
_source: Optional[DirectorySource] = None
_settings_store: Optional[SettingsStore] = None
_dispatch_loop: Optional[DispatchLoop] = None


def set_checkpoint_store(store: CheckpointStore):
    """Set global checkpoint store instance"""
    global _checkpoint_store
    _checkpoint_store = store


def get_checkpoint_store() -> CheckpointStore:
    """Get global checkpoint store instance, creating a default one on first use"""
    global _checkpoint_store
    if _checkpoint_store is None:
        _checkpoint_store = CheckpointStore()
    return _checkpoint_store


def set_lifecycle(lifecycle: LifecycleManager):
    """Set global lifecycle manager instance"""
    global _lifecycle
    _lifecycle = lifecycle


def get_lifecycle() -> LifecycleManager:
    """Get global lifecycle manager instance, bound to the current checkpoint store"""
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = LifecycleManager(get_checkpoint_store())
    return _lifecycle


def set_source(source: DirectorySource):
    """Set global input source instance"""
    global _source
    _source = source


def get_source() -> Optional[DirectorySource]:
    """Get global input source instance"""
    return _source


def set_settings_store(settings_store: SettingsStore):
    """Set global settings store instance"""
    global _settings_store
    _settings_store = settings_store


def get_settings_store() -> Optional[SettingsStore]:
    """Get global settings store instance"""
    return _settings_store


def set_dispatch_loop(loop: Optional[DispatchLoop]):
    """Set global dispatch loop instance"""
    global _dispatch_loop
    _dispatch_loop = loop


def get_dispatch_loop() -> Optional[DispatchLoop]:
    """Get global dispatch loop instance"""
    return _dispatch_loop


def reset():
    """Forget every registered component"""
    global _checkpoint_store, _lifecycle, _source, _settings_store, _dispatch_loop
    _checkpoint_store = None
    _lifecycle = None
    _source = None
    _settings_store = None
    _dispatch_loop = None
