from enum import Enum

from context_rules.models import FileStatus


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


FILE_STATUS_STYLE = {
    FileStatus.INCLUDED_HOT: UIStyle.GREEN.value,
    FileStatus.INCLUDED_COLD: UIStyle.CYAN.value,
    FileStatus.EXCLUDED_BY_RULE: UIStyle.MAGENTA.value,
    FileStatus.IGNORED_BY_VCS: UIStyle.DIM.value,
    FileStatus.OMITTED_NO_MATCH: UIStyle.DIM.value,
}

FILE_STATUS_LABEL = {
    FileStatus.INCLUDED_HOT: "hot",
    FileStatus.INCLUDED_COLD: "cold",
    FileStatus.EXCLUDED_BY_RULE: "excluded",
    FileStatus.IGNORED_BY_VCS: "ignored",
    FileStatus.OMITTED_NO_MATCH: "omitted",
}
