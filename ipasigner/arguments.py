from pathlib import Path


def add_signing_arguments(parser):
    """Add all signing-related arguments to an existing parser."""
    parser.add_argument(
        "ipa_path",
        type=Path,
        nargs="?",
        help="Path to the IPA file to sign [default: last signed IPA]",
    )

    parser.add_argument(
        "--profile",
        "-p",
        type=Path,
        dest="profile_path",
        help="Provisioning profile (.mobileprovision) to embed [default: last used]",
    )

    parser.add_argument(
        "--identity",
        "-i",
        type=str,
        help="Signing identity, as listed by `ipasigner identities` [default: last used or prompt]",
    )

    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        help="Directory for the signed IPA [default: next to the input IPA]",
    )

    parser.add_argument(
        "--install",
        action="store_true",
        help="Install the signed IPA on a connected device afterwards [default: disabled]",
    )

    add_device_argument(parser)


def add_device_argument(parser):
    parser.add_argument(
        "--device",
        "-d",
        type=str,
        help="UDID of the device to install on [default: the only connected device]",
    )


def add_install_arguments(parser):
    parser.add_argument("ipa_path", type=Path, help="Path to the signed IPA to install")
    add_device_argument(parser)


def add_import_cert_arguments(parser):
    parser.add_argument(
        "cert_path", type=Path, help="Certificate to import (.cer or .p12)"
    )
    parser.add_argument(
        "--password",
        type=str,
        help="Password of the .p12 [default: let Keychain Access ask for it]",
    )


def add_profile_arguments(parser):
    parser.add_argument(
        "profile_path", type=Path, help="Provisioning profile to inspect"
    )
