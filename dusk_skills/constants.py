"""Centralized constants for the dusk_skills package."""

# Output subdirectories present in every finished tree
PROMPTS_SUBDIR = "prompts"
SKILLS_SUBDIR = "skills"
OUTPUT_SUBDIRS = (PROMPTS_SUBDIR, SKILLS_SUBDIR)

# Sentinel replaced with the path to the playwright-cli executable
PLAYWRIGHT_CLI_TOKEN = "##PLAYWRIGHT-CLI##"

MANIFEST_FILENAME = "skills.toml"
DEFAULT_OUT_DIR = "out"

# Entries never copied out of a source
IGNORED_NAMES = (".git",)
