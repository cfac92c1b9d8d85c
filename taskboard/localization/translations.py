"""User-facing messages."""

TRANSLATIONS = {
    "en": {
        "errors.resource_not_found": "Resource not found",
        "errors.not_authenticated": "Not authenticated",
        "errors.permission_denied": "Permission denied",
        "errors.validation_error": "Validation error",
        "errors.resource_conflict": "Resource conflict",
        "errors.invalid_credentials": "Incorrect email or password",
        "errors.email_in_use": "An account with this email already exists",
        "errors.session_ended": "Session has ended, sign in again",
        "errors.task_not_found": "Task not found",
        "errors.board_not_found": "Board not found",
        "errors.board_not_owned": "Tasks can only be moved to your own boards",
        "errors.task_text_required": "Please enter the task name",
        "errors.board_name_required": "Please enter the board name",
        "errors.board_color_invalid": "Unknown board color",
        "errors.unknown_collection": "Unknown collection: {collection}",
        "errors.unsupported_filter": "Unsupported subscription filter: {field}",
        "errors.invalid_filter_value": "Invalid value for subscription filter: {field}",
        "errors.cross_owner_read": "Subscriptions are limited to your own records",
        "errors.tracker_token_missing": "No GitHub access token, sign in with GitHub again",
        "errors.tracker_request_failed": "GitHub request failed",
        "errors.tracker_token_exchange_failed": "Could not obtain a GitHub access token",
        "errors.tracker_credential_in_use": "This GitHub account is already linked to another account",
        "errors.tracker_state_invalid": "GitHub sign-in expired or was tampered with, start again",
        "errors.tracker_not_configured": "GitHub integration is not configured",
        "errors.issue_title_required": "Please enter the issue title",
        "errors.issue_state_invalid": "Issue state must be open, closed or all",
        "notices.task_create_failed": "Could not add the task",
        "notices.task_update_failed": "Could not update the task",
        "notices.task_delete_failed": "Could not delete the task",
        "notices.task_move_failed": "Could not move the task",
        "notices.board_create_failed": "Could not create the board",
        "notices.board_update_failed": "Could not update the board",
        "notices.board_delete_failed": "Could not delete the board",
        "notices.profile_update_failed": "Could not update the profile",
        "notices.import_failed": "Could not import tasks from GitHub",
        "calendar.untitled": "Untitled",
        "reminders.title": "Task due",
        "reminders.message": "\"{text}\" is due now",
    },
    "pl": {
        "errors.resource_not_found": "Nie znaleziono zasobu",
        "errors.not_authenticated": "Użytkownik nie jest zalogowany",
        "errors.permission_denied": "Brak uprawnień",
        "errors.validation_error": "Błąd walidacji",
        "errors.resource_conflict": "Konflikt zasobów",
        "errors.invalid_credentials": "Nieprawidłowy email lub hasło",
        "errors.email_in_use": "Konto z tym adresem email już istnieje",
        "errors.session_ended": "Sesja wygasła, zaloguj się ponownie",
        "errors.task_not_found": "Nie znaleziono zadania",
        "errors.board_not_found": "Nie znaleziono tablicy",
        "errors.board_not_owned": "Zadania można przenosić tylko do własnych tablic",
        "errors.task_text_required": "Proszę wpisać nazwę zadania.",
        "errors.board_name_required": "Proszę wpisać nazwę tablicy.",
        "errors.board_color_invalid": "Nieznany kolor tablicy",
        "errors.tracker_token_missing": "Brak tokenu dostępu GitHub. Zaloguj się ponownie.",
        "errors.tracker_request_failed": "Wystąpił błąd podczas komunikacji z GitHub.",
        "errors.tracker_token_exchange_failed": "Wystąpił błąd podczas otrzymywania tokena dostępu.",
        "errors.tracker_credential_in_use": "To konto GitHub jest już połączone z innym kontem.",
        "errors.issue_title_required": "Proszę podać tytuł zgłoszenia.",
        "notices.task_create_failed": "Nie udało się dodać zadania.",
        "notices.task_update_failed": "Nie udało się zaktualizować zadania.",
        "notices.task_delete_failed": "Nie udało się usunąć zadania.",
        "notices.task_move_failed": "Nie udało się przenieść zadania.",
        "notices.board_create_failed": "Nie udało się stworzyć tablicy.",
        "notices.board_update_failed": "Nie udało się zaktualizować tablicy.",
        "notices.board_delete_failed": "Nie udało się usunąć tablicy.",
        "notices.profile_update_failed": "Nie udało się zaktualizować profilu.",
        "notices.import_failed": "Nie udało się pobrać zadań z GitHub.",
        "calendar.untitled": "Brak nazwy",
        "reminders.title": "Termin zadania",
    },
}
