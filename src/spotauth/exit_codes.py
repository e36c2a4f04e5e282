"""Process exit codes, one per failure class.

Every :class:`~spotauth.exceptions.SpotauthError` subclass carries one of
these, so a script can tell "log in again" from "try again later"::

    $ spotauth auth callback 'http://127.0.0.1:8888/authorised?error=access_denied&state=...'
    $ echo $?
    3
"""

EXIT_SUCCESS = 0

EXIT_GENERIC_FAILURE = 1

# bad arguments, or a value the flow refuses (verifier length, scope name)
EXIT_INVALID_USAGE = 2

# callback rejected, login not started, or no usable credential
EXIT_AUTH_FAILURE = 3

EXIT_STORE_ERROR = 4

# token endpoint or Web API unreachable, or answered with an error status
EXIT_CONNECTION_ERROR = 6
