from rich.text import Text

__version__ = "0.1.0"

APP_NAME = "ipasigner"
APP_DESCRIPTION = "Re-sign IPAs with your own identity and provisioning profile"


def get_banner_text() -> Text:
    """Banner shown above the help output"""
    return Text.assemble(
        ("ipa", "bold cyan"),
        ("signer", "bold magenta"),
    )
