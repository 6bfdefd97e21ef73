import os
from datetime import datetime


def get_target_run_folder(application_name: str, root: str = "./runs") -> str:
    # runs is datetime generated folder in the application name folder
    target_run_folder = f"{root}/{application_name}/{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    os.makedirs(target_run_folder, exist_ok=True)
    return target_run_folder
