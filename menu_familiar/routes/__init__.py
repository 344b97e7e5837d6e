# menu_familiar/routes/__init__.py
