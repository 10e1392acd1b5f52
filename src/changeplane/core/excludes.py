"""Canonical trackability lists.

TRACKED_EXTENSIONS: allow-list of file extensions (compared case-insensitively).
    Source, markup, project and configuration files an assistant is likely to edit.

IGNORED_DIRS: deny-list of directory names (compared case-insensitively).
    A path with ANY segment equal to one of these names is never tracked,
    no matter how deep the segment sits.

Both lists are fixed. The same pair gates snapshotting, watching and
classification, see changeplane.tracking.policy.
"""

from __future__ import annotations

# =============================================================================
# Extension allow-list
# =============================================================================

TRACKED_EXTENSIONS: frozenset[str] = frozenset(
    (
        # -------------------------------------------------------------------------
        # .NET ecosystem
        # -------------------------------------------------------------------------
        ".cs",
        ".vb",
        ".fs",
        ".xaml",
        ".xml",
        ".json",
        ".config",
        ".vsixmanifest",
        ".csproj",
        ".vbproj",
        ".fsproj",
        ".sln",
        ".props",
        ".targets",
        ".resx",
        ".settings",
        # -------------------------------------------------------------------------
        # Web
        # -------------------------------------------------------------------------
        ".js",
        ".ts",
        ".jsx",
        ".tsx",
        ".vue",
        ".html",
        ".css",
        ".scss",
        ".less",
        # -------------------------------------------------------------------------
        # Scripting and JVM / native languages
        # -------------------------------------------------------------------------
        ".py",
        ".rb",
        ".php",
        ".java",
        ".kt",
        ".scala",
        ".go",
        ".rs",
        ".swift",
        ".c",
        ".cpp",
        ".h",
        ".hpp",
        ".m",
        ".mm",
        # -------------------------------------------------------------------------
        # Shell and data
        # -------------------------------------------------------------------------
        ".sql",
        ".sh",
        ".ps1",
        ".bat",
        ".cmd",
        # -------------------------------------------------------------------------
        # Configuration and docs
        # -------------------------------------------------------------------------
        ".yaml",
        ".yml",
        ".toml",
        ".ini",
        ".md",
        ".txt",
    )
)

# =============================================================================
# Directory deny-list
# =============================================================================

IGNORED_DIRS: frozenset[str] = frozenset(
    (
        # Build outputs
        "bin",
        "obj",
        "dist",
        "build",
        "out",
        "target",
        # Dependencies
        "node_modules",
        "packages",
        # VCS and IDE state
        ".git",
        ".vs",
        ".idea",
        # Caches
        "__pycache__",
        ".cache",
    )
)
