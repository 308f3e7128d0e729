"""
Integrations with collaborators outside the topic store: gallery file
placement and user notifications.
"""
