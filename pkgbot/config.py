"""
Configuration defaults for pkgbot
=================================================================================
PURPOSE: Centralized default settings for feed checking, building, installing
         and repository maintenance.

USAGE: Read by pkgbot.common.config_loader, which layers an optional YAML file
       and environment variables on top of these values.

ORGANIZATION:
1. Paths
2. Upstream fetching
3. Repository maintenance
4. Version comparison
"""

# ==============================================================================
# 1. PATHS
# ==============================================================================

# FEEDS_JSON_NAME: Feed registry file, relative to the package root
FEEDS_JSON_NAME = "feeds.json"

# CONFIG_FILE_NAME: Optional YAML settings file looked up in the package root
CONFIG_FILE_NAME = "pkgbot.yaml"

# LOCK_NAME: Lock directory created in the package root by mutating commands
LOCK_NAME = ".pkgbot.lock"

# BUILD_LOG_NAME: makepkg output is captured here inside each recipe directory
BUILD_LOG_NAME = ".pkgbot-build.log"

# ==============================================================================
# 2. UPSTREAM FETCHING
# ==============================================================================

# Every upstream request is bounded by this timeout (seconds). No retries.
FETCH_TIMEOUT = 30

USER_AGENT = "Package-Update-Bot/1.0"

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

# How many releases/tags each GitHub strategy looks at
GITHUB_RELEASES_PER_PAGE = 30
GITHUB_FILTERED_RELEASES_PER_PAGE = 50
GITHUB_TAGS_PER_PAGE = 100

# Parallel fetch workers (1 = sequential)
FETCH_JOBS = 1

# ==============================================================================
# 3. REPOSITORY MAINTENANCE
# ==============================================================================

# REPO_DB_NAME: appears as <name>.db.tar.gz inside REPO_DIR
REPO_DB_NAME = "pkgbot"

# REPO_DIR: local repository holding built packages, relative to the root
REPO_DIR = "repo"

# KEEP_N: number of most recent artifacts kept per package name
KEEP_N = 2

# ==============================================================================
# 4. VERSION COMPARISON
# ==============================================================================

# "builtin" uses the pure Python vercmp port, "vercmp" shells out to pacman's
# vercmp binary and degrades to lexical comparison when it is unavailable.
COMPARATOR_BACKEND = "builtin"

VCS_SUFFIXES = ("-git", "-hg", "-svn", "-bzr")
