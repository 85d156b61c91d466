import os
from pathlib import Path


def ensure_output_directory(directory):
    """
    Ensure the output directory exists. If it doesn't, create it.

    Args:
        directory (str | Path): Path to the output directory.
    """
    os.makedirs(directory, exist_ok=True)


def format_duration(seconds):
    """
    Format a duration in seconds into a human-readable string.

    Args:
        seconds (float): Duration in seconds.
    Returns:
        str: Formatted duration string.
    """
    if seconds < 60:
        return f"{seconds:.2f} sec"
    elif seconds < 3600:
        return f"{seconds / 60:.2f} min"
    else:
        return f"{seconds / 3600:.2f} hr"


def save_frame_csv(df, path):
    """
    Write a DataFrame to CSV, creating the parent directory first.

    Args:
        df (pd.DataFrame): Table to write.
        path (str | Path): Destination file.
    Returns:
        Path: The written file.
    """
    path = Path(path)
    ensure_output_directory(path.parent)
    df.to_csv(path, index=False)
    return path
