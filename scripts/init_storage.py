from supabase import create_client

from lib.config import get_settings


def bucket_names(settings):
    return [
        settings.audio_cache_bucket,
        settings.current_photo_bucket,
        settings.future_photo_bucket,
        settings.voice_recordings_bucket,
    ]


def init_storage(client=None):
    """Create any missing public storage buckets the service writes to"""
    try:
        settings = get_settings()
        settings.require('supabase_url', 'supabase_service_role_key')
        if client is None:
            client = create_client(settings.supabase_url, settings.supabase_service_role_key)

        existing = {bucket.name for bucket in client.storage.list_buckets()}
        created = []
        for name in bucket_names(settings):
            if name in existing:
                print(f"Bucket '{name}' already exists.")
                continue
            print(f"Creating public bucket '{name}'...")
            client.storage.create_bucket(name, options={'public': True})
            created.append(name)

        print(f"Storage ready ({len(created)} buckets created).")
        return created

    except Exception as e:
        print(f"Error initializing storage: {str(e)}")
        raise


if __name__ == "__main__":
    init_storage()
