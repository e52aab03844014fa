# -*- coding: utf-8 -*-
"""
Microsoft authentication module for OneDrive filesystem operations.

App-only (client credentials) tokens for the Graph API, obtained with MSAL.
Token refresh is not handled here: callers holding a long-lived client rebuild it
when the token expires.
"""

import msal

from .exceptions import AuthenticationError
from .thread_utils import thread_safe_print


def acquire_token(tenant_id, client_id, client_secret, login_endpoint, graph_endpoint):
    """
    Get an app-only Graph token for a registered Azure AD application.

    Args:
        tenant_id (str): Directory (tenant) the app is registered in
        client_id (str): Application ID
        client_secret (str): Client secret
        login_endpoint (str): Authority host, e.g. login.microsoftonline.com (or a national cloud)
        graph_endpoint (str): Graph host the token is scoped to, e.g. graph.microsoft.com

    Returns:
        dict: Token dictionary containing 'access_token', 'token_type' and 'expires_in'

    Raises:
        AuthenticationError: If authentication fails

    Note:
        The app registration needs Files.ReadWrite.All (or Sites.ReadWrite.All
        for SharePoint document libraries).
    """
    app = msal.ConfidentialClientApplication(
        authority=f"https://{login_endpoint}/{tenant_id}",
        client_id=client_id,
        client_credential=client_secret
    )

    # .default: every application permission granted to the app
    result = app.acquire_token_for_client(scopes=[f"https://{graph_endpoint}/.default"])

    # MSAL reports failures in the result, it does not raise
    if "access_token" not in result:
        error_msg = result.get("error", "unknown_error")
        error_desc = result.get("error_description", "No description provided")
        error_codes = result.get("error_codes", [])

        thread_safe_print("[!] AUTHENTICATION FAILED")

        if "invalid_client" in error_msg or 7000215 in error_codes:
            thread_safe_print("[!] Invalid client credentials: verify CLIENT_ID, CLIENT_SECRET and TENANT_ID,")
            thread_safe_print("[!] and check the client secret has not expired.")
            raise AuthenticationError(f"Authentication failed: Invalid client credentials - {error_desc}")

        if "unauthorized_client" in error_msg or 700016 in error_codes:
            thread_safe_print("[!] Application not authorized: grant Files.ReadWrite.All and admin consent.")
            raise AuthenticationError(f"Authentication failed: Application not authorized - {error_desc}")

        if "invalid_scope" in error_msg or "AADSTS70011" in error_desc:
            thread_safe_print(f"[!] Invalid scope: verify Graph API endpoint is correct: {graph_endpoint}")
            raise AuthenticationError(f"Authentication failed: Invalid scope - {error_desc}")

        thread_safe_print(f"[!] Error: {error_msg} - {error_desc}")
        raise AuthenticationError(f"Authentication failed: {error_msg} - {error_desc}")

    return result


def build_auth_headers(token):
    """
    Build the Authorization header for a token dictionary.

    Args:
        token (dict): Token dictionary from acquire_token()

    Returns:
        dict: {'Authorization': '<type> <token>'}
    """
    return {'Authorization': f"{token.get('token_type', 'Bearer')} {token['access_token']}"}
