"""
Builds a one-file FolderLens executable with PyInstaller.
"""
import os
import shutil
import subprocess
import sys

NAME = 'FolderLens'


def build():
    print("Cleaning old builds...")
    for folder in ['build', 'dist']:
        if os.path.exists(folder):
            shutil.rmtree(folder)

    print("Building executable...")

    cmd = [
        'pyinstaller',
        '--onefile',
        '--console',
        '--name', NAME,
        '--hidden-import', 'PySide6.QtCore',
        '--hidden-import', 'psutil',
        os.path.join('folderlens', '__main__.py'),
    ]

    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.returncode != 0:
        print("Build failed:")
        print(result.stderr)
        sys.exit(1)

    exe = NAME + ('.exe' if sys.platform.startswith('win') else '')
    release_dir = 'release'
    os.makedirs(release_dir, exist_ok=True)
    shutil.copy(os.path.join('dist', exe), os.path.join(release_dir, exe))

    if os.path.exists('README.md'):
        shutil.copy('README.md', os.path.join(release_dir, 'README.md'))

    print(f"Release written to {release_dir}/")


if __name__ == '__main__':
    build()
