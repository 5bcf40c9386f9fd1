from flask import Blueprint, send_from_directory, abort

from signsync.services.content_store import ContentStore
from signsync.services.utils import MediaUtils


def init_main_routes(main_bp: Blueprint, content_store: ContentStore):

    @main_bp.route('/favicon.ico')
    def favicon():
        return "", 204

    @main_bp.route('/media/<path:filename>')
    def media(filename):
        """Отдача медиафайлов папок плейлистов"""
        if MediaUtils.media_type(filename) is None:
            abort(404)
        return send_from_directory(content_store.media_root.resolve(), filename, conditional=True)

    @main_bp.route('/uploads/<path:filename>')
    def uploads(filename):
        """Отдача файлов, загруженных для ручных плейлистов"""
        if MediaUtils.media_type(filename) is None:
            abort(404)
        return send_from_directory(content_store.uploads_dir.resolve(), filename, conditional=True)
