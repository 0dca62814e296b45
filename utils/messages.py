"""Client-facing copy, per locale.

Italian is the storefront's primary language; English is the fallback for
any key a locale does not translate.
"""

from __future__ import annotations

from flask import current_app, has_request_context, request

FALLBACK_LOCALE = 'en'

MESSAGES: dict[str, dict[str, str]] = {
    'en': {
        'missing_phone': 'Phone number is required',
        'missing_phone_code': 'Phone number and code are required',
        'invalid_phone': 'Invalid phone number',
        'invalid_code': 'Invalid or expired verification code',
        'code_expired': 'Verification code has expired. Please request a new one.',
        'user_not_found': 'User not found',
        'ambiguous_user': 'More than one account uses this phone number. Please contact support.',
        'phone_in_use': 'Phone number is already in use by another account.',
        'missing_reset_fields': 'Token and Password required',
        'token_invalid': 'Invalid token for this operation.',
        'token_expired': 'Token expired. Please verify your phone number again.',
        'weak_password': 'Password must be at least {min_length} characters',
        'missing_fields': '{fields} required',
        'invalid_email': 'Invalid email format',
        'gdpr_required': 'You must agree to the Privacy Policy to register',
        'email_taken': 'An account with this email already exists.',
        'invalid_credentials': 'Invalid email or password',
        'account_inactive': 'Account is deactivated.',
        'email_not_confirmed': 'Email not confirmed. Verify your phone number to activate your account.',
        'unauthorized': 'Unauthorized',
        'session_expired': 'Session has expired. Please login again.',
        'session_invalid': 'Invalid session. Please login again.',
        'service_unavailable': 'Something went wrong. Please try again later.',
        'not_found': 'Resource not found',
        'method_not_allowed': 'Method not allowed',
        'otp_sent': 'OTP sent successfully',
        'phone_verified': 'Phone number verified successfully',
        'password_updated': 'Password updated successfully.',
        'phone_updated': 'Phone number updated successfully',
        'registered': 'Registration successful',
        'login_ok': 'Login successful',
    },
    'it': {
        'missing_phone': 'Il numero di telefono è obbligatorio.',
        'missing_phone_code': 'Numero di telefono e codice sono obbligatori.',
        'invalid_phone': 'Numero di telefono non valido.',
        'invalid_code': 'Codice non valido o scaduto.',
        'code_expired': 'Il codice è scaduto. Richiedine uno nuovo.',
        'user_not_found': 'Utente non trovato',
        'ambiguous_user': 'Più account usano questo numero di telefono. Contatta l\'assistenza.',
        'phone_in_use': 'Il numero di telefono è già associato a un altro account.',
        'missing_reset_fields': 'Token e password obbligatori.',
        'token_invalid': 'Token invalido per questa operazione.',
        'token_expired': 'Token non valido o scaduto.',
        'weak_password': 'La password deve contenere almeno {min_length} caratteri.',
        'missing_fields': '{fields} obbligatori.',
        'invalid_email': 'Formato email non valido.',
        'gdpr_required': 'Devi accettare la Privacy Policy per registrarti.',
        'email_taken': 'Esiste già un account con questa email.',
        'invalid_credentials': 'Email o password non validi.',
        'account_inactive': 'Account disattivato.',
        'email_not_confirmed': "Email non confermata. Verifica il tuo numero di telefono per attivare l'account.",
        'unauthorized': 'Non autorizzato.',
        'session_expired': 'Sessione scaduta. Accedi di nuovo.',
        'session_invalid': 'Sessione non valida. Accedi di nuovo.',
        'service_unavailable': 'Si è verificato un errore. Riprova più tardi.',
        'not_found': 'Risorsa non trovata.',
        'method_not_allowed': 'Metodo non consentito.',
        'otp_sent': 'Codice inviato con successo.',
        'phone_verified': 'Numero di telefono verificato con successo.',
        'password_updated': 'Password aggiornata con successo.',
        'phone_updated': 'Numero di telefono aggiornato con successo.',
        'registered': 'Registrazione completata.',
        'login_ok': 'Accesso effettuato.',
    },
    'fr': {
        'invalid_phone': 'Numéro de téléphone invalide.',
        'invalid_code': 'Code invalide ou expiré.',
        'code_expired': 'Le code a expiré. Veuillez en demander un nouveau.',
        'user_not_found': 'Utilisateur introuvable',
        'phone_in_use': 'Ce numéro est déjà utilisé par un autre compte.',
        'token_invalid': 'Jeton invalide pour cette opération.',
        'token_expired': 'Jeton expiré. Veuillez vérifier à nouveau votre numéro.',
        'otp_sent': 'Code envoyé avec succès.',
        'phone_verified': 'Numéro de téléphone vérifié avec succès.',
        'password_updated': 'Mot de passe mis à jour avec succès.',
        'phone_updated': 'Numéro de téléphone mis à jour avec succès.',
    },
    'es': {
        'invalid_phone': 'Número de teléfono no válido.',
        'invalid_code': 'Código no válido o caducado.',
        'code_expired': 'El código ha caducado. Solicita uno nuevo.',
        'user_not_found': 'Usuario no encontrado',
        'phone_in_use': 'El número ya está en uso por otra cuenta.',
        'token_invalid': 'Token no válido para esta operación.',
        'token_expired': 'Token caducado. Verifica tu número de nuevo.',
        'otp_sent': 'Código enviado correctamente.',
        'phone_verified': 'Número de teléfono verificado correctamente.',
        'password_updated': 'Contraseña actualizada correctamente.',
        'phone_updated': 'Número de teléfono actualizado correctamente.',
    },
    'ar': {
        'invalid_phone': 'رقم الهاتف غير صالح.',
        'invalid_code': 'رمز التحقق غير صالح أو منتهي الصلاحية.',
        'code_expired': 'انتهت صلاحية الرمز. يرجى طلب رمز جديد.',
        'user_not_found': 'المستخدم غير موجود',
        'phone_in_use': 'رقم الهاتف مستخدم بالفعل من قبل حساب آخر.',
        'token_invalid': 'رمز غير صالح لهذه العملية.',
        'token_expired': 'انتهت صلاحية الرمز. يرجى التحقق من رقمك مرة أخرى.',
        'otp_sent': 'تم إرسال الرمز بنجاح.',
        'phone_verified': 'تم التحقق من رقم الهاتف بنجاح.',
        'password_updated': 'تم تحديث كلمة المرور بنجاح.',
        'phone_updated': 'تم تحديث رقم الهاتف بنجاح.',
    },
}


def resolve_locale() -> str:
    """Pick the response locale for the current request.

    Order: explicit ``?locale=``, then ``Accept-Language``, then DEFAULT_LOCALE.
    """
    supported = tuple(current_app.config.get('SUPPORTED_LOCALES') or MESSAGES.keys())
    default = current_app.config.get('DEFAULT_LOCALE') or FALLBACK_LOCALE

    if not has_request_context():
        return default

    explicit = (request.args.get('locale') or '').strip().lower()
    if explicit in supported:
        return explicit

    if request.headers.get('Accept-Language'):
        best = request.accept_languages.best_match(supported)
        if best:
            return best

    return default


def translate(key: str, locale: str | None = None, **params) -> str:
    locale = locale or resolve_locale()
    template = (
        MESSAGES.get(locale, {}).get(key)
        or MESSAGES[FALLBACK_LOCALE].get(key)
        or key
    )
    if params:
        try:
            return template.format(**params)
        except (KeyError, IndexError):
            return template
    return template
