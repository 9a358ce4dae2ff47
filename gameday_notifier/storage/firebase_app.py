"""Firebase app lifecycle"""
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from ..utils.logger import setup_logger

logger = setup_logger(__name__)

APP_NAME = "gameday-notifier"


def init_firebase_app(
    credentials_path: Optional[str] = None,
    project_id: Optional[str] = None,
    name: str = APP_NAME
) -> firebase_admin.App:
    """
    Initialize a named Firebase app

    Args:
        credentials_path: Service-account JSON file; application default
            credentials are used when omitted
        project_id: Optional project ID override
        name: App name, so the process can hold more than one app

    Returns:
        The initialized firebase_admin.App
    """
    if credentials_path:
        cred = credentials.Certificate(credentials_path)
    else:
        cred = credentials.ApplicationDefault()

    options = {"projectId": project_id} if project_id else None

    try:
        app = firebase_admin.initialize_app(cred, options, name=name)
    except Exception as e:
        logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
        raise

    logger.info(f"Firebase app '{name}' initialized")
    return app


def firestore_client(app: firebase_admin.App):
    """Firestore client bound to the given app"""
    return firestore.client(app)


def close_firebase_app(app: firebase_admin.App):
    """Release the app and its clients"""
    firebase_admin.delete_app(app)
    logger.info(f"Firebase app '{app.name}' closed")
