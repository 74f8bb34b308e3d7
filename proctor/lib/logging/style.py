from pygments.style import Style
from pygments.token import Keyword, Name, Number, Punctuation, String


class LogStyle(Style):
    """Colors for the structured context appended to log lines."""

    styles = {
        Punctuation: "#808080",
        Name.Tag: "#5f87d7",
        String: "#87af5f",
        String.Double: "#87af5f",
        Number: "#d7875f",
        Keyword.Constant: "#af87d7",
    }
