"""Command-line interface for mfa-session.

Renews an AWS profile's temporary session credentials using a TOTP code
derived from the profile's MFA secret, and writes them to the AWS config and
credentials files.
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import Mapping, Optional

from .errors import CredentialNotSaved, MfaSessionError
from .io.file_utils import CredentialFileManager
from .otp import otp_utils
from .session import SessionRenewer
from .settings import RuntimeConfig, load_profiles, select_profile
from .sts.issuer import AwsCliIssuer

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_SAVED = 3
MASK_THRESHOLD = 30


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mfa-session", description="Renew AWS session tokens with a TOTP MFA code.")
    parser.add_argument("--settings", help="JSON file holding the profiles (defaults to ./package.json).")
    parser.add_argument("--config-file", help="AWS config file to update (defaults to ~/.aws/config).")
    parser.add_argument("--credentials-file", help="AWS credentials file to update (defaults to ~/.aws/credentials).")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for the AWS CLI (defaults to 30).")
    parser.add_argument("--verbose", action="store_true", help="Log progress to stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    renew_parser = subparsers.add_parser("renew", help="Obtain and store a new session token.")
    renew_parser.add_argument("profile", nargs="?", default="default", help="Profile name (defaults to 'default').")
    renew_parser.add_argument("--duration", type=int, help="Requested session lifetime in seconds.")

    code_parser = subparsers.add_parser("code", help="Print the current one-time code for a profile.")
    code_parser.add_argument("profile", nargs="?", default="default", help="Profile name (defaults to 'default').")

    show_parser = subparsers.add_parser("show", help="Print the stored credentials for a profile.")
    show_parser.add_argument("profile", nargs="?", default="default", help="Profile name (defaults to 'default').")

    provision_parser = subparsers.add_parser(
        "provision-uri", help="Print an otpauth:// URI so the MFA secret can be added to an authenticator app."
    )
    provision_parser.add_argument("profile", nargs="?", default="default", help="Profile name (defaults to 'default').")
    provision_parser.add_argument("--account", help="Account label shown in the authenticator app (defaults to the profile name).")
    provision_parser.add_argument("--issuer", default="AWS", help="Issuer label (defaults to AWS).")
    provision_parser.add_argument("--no-qr", action="store_true", help="Skip ASCII QR output.")

    return parser


def _mask(value: str) -> str:
    if len(value) > MASK_THRESHOLD:
        return f"{value[:10]}...{value[-10:]}"
    return value


def _print_section(title: str, profile_name: str, values: Mapping[str, str]) -> None:
    print(f"=================== {title.upper()} ===================")
    print(f"PROFILE_NAME: {profile_name}")
    for key, value in values.items():
        print(f"{key.upper()}: {_mask(str(value))}")


def handle_renew(config: RuntimeConfig, profile_name: str, duration: Optional[int]) -> None:
    profiles = load_profiles(config.settings_path)
    files = CredentialFileManager(config.config_path, config.credentials_path)
    issuer = AwsCliIssuer(timeout=config.timeout, duration_seconds=duration)
    renewer = SessionRenewer(profiles, profile_name, files, issuer, settings_source=str(config.settings_path))
    credential = renewer.renew()
    _print_section("Token renewed successfully", profile_name, credential.to_dict())


def handle_code(config: RuntimeConfig, profile_name: str) -> None:
    profile = select_profile(load_profiles(config.settings_path), profile_name, str(config.settings_path))
    now = time.time()
    code = otp_utils.generate_totp(profile.mfa_secret_key, now)
    print(code)
    print(f"Valid for {otp_utils.seconds_remaining(now)}s.")


def handle_show(config: RuntimeConfig, profile_name: str) -> None:
    files = CredentialFileManager(config.config_path, config.credentials_path)
    values = files.read_credentials(profile_name)
    if values is None:
        raise ValueError(f"Profile [{profile_name}] not found in {config.credentials_path}.")
    _print_section("Stored credentials", profile_name, values)


def handle_provision(config: RuntimeConfig, profile_name: str, account: Optional[str], issuer: str, show_qr: bool) -> None:
    profile = select_profile(load_profiles(config.settings_path), profile_name, str(config.settings_path))
    uri = otp_utils.provisioning_uri(profile.mfa_secret_key, account or profile_name, issuer)
    if show_qr:
        otp_utils.display_qr(uri)
    print("Provisioning URI (store securely, do not share):")
    print(uri)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = RuntimeConfig.resolve(args.settings, args.config_file, args.credentials_file, args.timeout)
        if args.command == "renew":
            handle_renew(config, args.profile, args.duration)
            return EXIT_OK
        if args.command == "code":
            handle_code(config, args.profile)
            return EXIT_OK
        if args.command == "show":
            handle_show(config, args.profile)
            return EXIT_OK
        if args.command == "provision-uri":
            handle_provision(config, args.profile, args.account, args.issuer, not args.no_qr)
            return EXIT_OK
    except CredentialNotSaved as exc:
        print(f"Error: {exc}")
        print("The session below is valid but was not written; export it manually:")
        credential = exc.credential
        print(f"export AWS_ACCESS_KEY_ID={credential.aws_access_key_id}")
        print(f"export AWS_SECRET_ACCESS_KEY={credential.aws_secret_access_key}")
        print(f"export AWS_SESSION_TOKEN={credential.aws_session_token}")
        print(f"# expires {credential.expiration}")
        return EXIT_NOT_SAVED
    except (MfaSessionError, ValueError) as exc:
        print(f"Error: {exc}")
        return EXIT_ERROR

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
