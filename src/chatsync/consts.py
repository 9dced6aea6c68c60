STORAGE_KEY = "chatgpt-next-web"
DATA_DIR_NAME = ".chatsync"
SETTINGS_FILE_NAME = "sync.json"

SYNC_SETTINGS_VERSION = 1.2
RETIRED_PROXY_URL = "/api/cors/"
