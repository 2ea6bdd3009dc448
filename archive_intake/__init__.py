# Copyright 2026 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0


"""
Archive Intake - Secure ingestion of untrusted ZIP archives with an approval workflow.
"""

try:
    from ._version import __version__
except ImportError:
    __version__ = "0.0.0+unknown"


def __getattr__(name: str):
    """Lazy-load public API symbols on first access.

    Keeps ``import archive_intake`` cheap; Magika and FastAPI load only when
    the symbols needing them are touched.
    """
    _lazy_map = {
        "Config": (".config.config", "Config"),
        "ArchiveIntakeConstants": (".config.constants", "ArchiveIntakeConstants"),
        "IntakeService": (".core.service", "IntakeService"),
        "ExtractionExecutor": (".core.extractors.zip_extractor", "ExtractionExecutor"),
        "ExtractionLimits": (".core.archive_validator", "ExtractionLimits"),
        "ArchiveStructuralValidator": (".core.archive_validator", "ArchiveStructuralValidator"),
        "FileSecurityGate": (".core.security_gate", "FileSecurityGate"),
        "ContextStore": (".core.context_store", "ContextStore"),
        "sanitize_entry_path": (".core.path_sanitizer", "sanitize_entry_path"),
        "ContextRecord": (".core.models", "ContextRecord"),
        "ContextStatus": (".core.models", "ContextStatus"),
        "ContextType": (".core.models", "ContextType"),
        "ExtractOptions": (".core.models", "ExtractOptions"),
        "ExtractionOutcome": (".core.models", "ExtractionOutcome"),
        "ToolResult": (".core.models", "ToolResult"),
    }
    if name in _lazy_map:
        module_path, attr = _lazy_map[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        # Cache on the module so __getattr__ is only called once per symbol
        globals()[name] = val
        return val
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "IntakeService",
    "ExtractionExecutor",
    "ExtractionLimits",
    "ArchiveStructuralValidator",
    "FileSecurityGate",
    "ContextStore",
    "sanitize_entry_path",
    "ContextRecord",
    "ContextStatus",
    "ContextType",
    "ExtractOptions",
    "ExtractionOutcome",
    "ToolResult",
    "Config",
    "ArchiveIntakeConstants",
]
