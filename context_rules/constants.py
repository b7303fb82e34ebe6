from datetime import timedelta
from typing import Final


APP_NAME: Final[str] = "context-rules"

GIT_DIRNAME: Final[str] = ".git"
GROVE_DIRNAME: Final[str] = ".grove"
WORKTREES_DIRNAME: Final[str] = ".grove-worktrees"

RULESET_DIRNAMES: Final[tuple[str, ...]] = (".cx", ".cx.work")
RULESET_SUFFIX: Final[str] = ".rules"
DEFAULT_RULESET_NAME: Final[str] = "default"

ACTIVE_RULES_RELPATH: Final[str] = ".grove/rules"
LEGACY_RULES_FILENAME: Final[str] = ".grovectx"

PROJECT_DESCRIPTOR_FILENAME: Final[str] = "grove.yml"
DESCRIPTOR_CONTEXT_KEY: Final[str] = "context"
DESCRIPTOR_DEFAULT_RULES_KEY: Final[str] = "default_rules_path"
DESCRIPTOR_WORKSPACES_KEY: Final[str] = "workspaces"

ALWAYS_PRUNED_DIRS: Final[tuple[str, ...]] = (GIT_DIRNAME, GROVE_DIRNAME)

WORKSPACE_IGNORED_DIRS: Final[tuple[str, ...]] = (
    "node_modules",
    ".venv",
)

SECTION_SEPARATOR: Final[str] = "---"
GLOBAL_DIRECTIVE_PREFIXES: Final[tuple[str, ...]] = ("@find:", "@grep:")
BINARY_INCLUDE_PATTERN: Final[str] = "binary:include"
BINARY_EXCLUDE_PATTERN: Final[str] = "binary:exclude"

MAX_PARENT_TRAVERSALS: Final[int] = 2
DEFAULT_CACHE_TTL: Final[timedelta] = timedelta(hours=1)

GITHUB_URL_PREFIX: Final[str] = "https://github.com/"

SYSTEM_DIRS: Final[tuple[str, ...]] = (
    "/etc",
    "/usr",
    "/bin",
    "/sbin",
    "/proc",
    "/sys",
    "/dev",
    "/System",
    "/Library",
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\ProgramData",
)

BINARY_SNIFF_BYTES: Final[int] = 512
BINARY_CONTROL_RATIO: Final[float] = 0.3

BINARY_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        ".exe", ".dll", ".so", ".dylib", ".a", ".o", ".obj", ".lib", ".bin",
        ".class", ".jar", ".war", ".pyc", ".pyo", ".wasm",
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".tif", ".tiff", ".webp",
        ".mp3", ".mp4", ".wav", ".avi", ".mov", ".mkv", ".flac", ".ogg",
        ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".zst",
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        ".db", ".sqlite", ".sqlite3", ".woff", ".woff2", ".ttf", ".otf", ".eot",
    }
)

TEXT_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        ".txt", ".md", ".rst", ".go", ".py", ".js", ".jsx", ".ts", ".tsx",
        ".java", ".c", ".h", ".cc", ".cpp", ".hpp", ".rs", ".rb", ".php",
        ".cs", ".swift", ".kt", ".scala", ".sh", ".bash", ".zsh", ".fish",
        ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf", ".xml",
        ".html", ".htm", ".css", ".scss", ".sass", ".less", ".sql", ".lua",
        ".vim", ".el", ".ex", ".exs", ".erl", ".hs", ".ml", ".r", ".jl",
        ".dart", ".proto", ".graphql", ".tf", ".mod", ".sum", ".lock",
        ".rules", ".env", ".csv", ".tsv", ".svg", ".gitignore",
    }
)

TEXT_FILENAMES: Final[frozenset[str]] = frozenset(
    {
        "makefile", "dockerfile", "license", "readme", "changelog", "authors",
        "contributing", "gemfile", "rakefile", "procfile", "vagrantfile",
        "jenkinsfile", "justfile", ".gitignore", ".gitattributes",
        ".editorconfig", ".dockerignore", ".grovectx",
    }
)

EXECUTABLE_MAGIC: Final[tuple[bytes, ...]] = (
    b"\x7fELF",
    b"\xfe\xed\xfa\xce",
    b"\xfe\xed\xfa\xcf",
    b"\xce\xfa\xed\xfe",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",
    b"MZ",
)

BYTES_PER_TOKEN: Final[int] = 4
DEFAULT_TOP_FILES: Final[int] = 5
TOKEN_BUCKETS: Final[tuple[tuple[int, int | None, str], ...]] = (
    (0, 1000, "< 1k tokens"),
    (1000, 5000, "1k-5k tokens"),
    (5000, 10000, "5k-10k tokens"),
    (10000, None, "> 10k tokens"),
)

LANGUAGE_BY_EXTENSION: Final[dict[str, str]] = {
    ".go": "Go",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".java": "Java",
    ".c": "C",
    ".cpp": "C++",
    ".cc": "C++",
    ".h": "C/C++",
    ".hpp": "C++",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".cs": "C#",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".scala": "Scala",
    ".r": "R",
    ".m": "Objective-C",
    ".mm": "Objective-C++",
    ".sh": "Shell",
    ".bash": "Shell",
    ".zsh": "Shell",
    ".fish": "Shell",
    ".ps1": "PowerShell",
    ".md": "Markdown",
    ".markdown": "Markdown",
    ".rst": "reStructuredText",
    ".tex": "LaTeX",
    ".yml": "YAML",
    ".yaml": "YAML",
    ".json": "JSON",
    ".xml": "XML",
    ".html": "HTML",
    ".htm": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".sass": "Sass",
    ".less": "Less",
    ".sql": "SQL",
    ".toml": "TOML",
    ".ini": "INI",
    ".conf": "Config",
    ".cfg": "Config",
    ".txt": "Text",
}
