#!/usr/bin/env python3
"""
Upload a firmware binary to the fleet backend and optionally deploy it

Usage:
    python scripts/upload_firmware.py --version 2.3.0 --file build/concretebot_v2.3.0.bin \
        --description "Improved layer adhesion" --targets 1,2 --deploy

Requirements:
    pip install requests

Environment Variables:
    BASE_URL: Backend base URL (default: http://localhost:8000)
    ADMIN_USER: Admin username
    ADMIN_PASS: Admin password
"""
import os
import sys
import json
import argparse
import requests


def login(base_url: str, username: str, password: str) -> str:
    """Exchange admin credentials for a Bearer token"""
    response = requests.post(
        f"{base_url}/api/auth/login",
        json={"username": username, "password": password},
        timeout=30
    )
    response.raise_for_status()
    return response.json()["token"]


def upload_firmware(
    base_url: str,
    token: str,
    version: str,
    file_path: str,
    description: str,
    targets: list,
    provider: str = None
) -> dict:
    """Upload firmware to the backend; returns the new catalog entry"""
    url = f"{base_url}/api/firmware/upload"

    with open(file_path, 'rb') as f:
        files = {'file': (os.path.basename(file_path), f, 'application/octet-stream')}
        data = {
            'version': version,
            'description': description,
            'target_printers': json.dumps(targets)
        }
        if provider:
            data['storage_provider'] = provider

        print(f"Uploading firmware {version} from {file_path}...")
        response = requests.post(
            url,
            files=files,
            data=data,
            headers={'Authorization': f'Bearer {token}'},
            timeout=300  # 5 minutes for large files
        )

    response.raise_for_status()
    return response.json()['data']


def deploy_firmware(base_url: str, token: str, firmware_id: str) -> dict:
    response = requests.post(
        f"{base_url}/api/firmware/{firmware_id}/deploy",
        headers={'Authorization': f'Bearer {token}'},
        timeout=30
    )
    response.raise_for_status()
    return response.json()['data']


def main():
    parser = argparse.ArgumentParser(description='Upload firmware to the fleet backend')
    parser.add_argument('--version', required=True, help='Firmware version (e.g., 2.3.0)')
    parser.add_argument('--file', required=True, help='Path to firmware binary file (.bin or .hex)')
    parser.add_argument('--description', required=True, help='Release notes for this version')
    parser.add_argument('--targets', required=True, help='Comma-separated target printer ids')
    parser.add_argument('--provider', choices=['local', 'gcs', 'both'],
                        help='Storage backend (server default if omitted)')
    parser.add_argument('--deploy', action='store_true', help='Start deployment right after upload')
    parser.add_argument('--base-url', default=os.getenv('BASE_URL', 'http://localhost:8000'),
                        help='Backend base URL')
    parser.add_argument('--admin-user', default=os.getenv('ADMIN_USER', 'admin'),
                        help='Admin username')
    parser.add_argument('--admin-pass', default=os.getenv('ADMIN_PASS'),
                        help='Admin password')

    args = parser.parse_args()

    if not args.admin_pass:
        print("Error: Admin password required. Set ADMIN_PASS environment variable or use --admin-pass")
        sys.exit(1)
    if not os.path.exists(args.file):
        print(f"Error: File not found: {args.file}")
        sys.exit(1)

    targets = [t.strip() for t in args.targets.split(',') if t.strip()]

    try:
        token = login(args.base_url, args.admin_user, args.admin_pass)
        firmware = upload_firmware(
            base_url=args.base_url,
            token=token,
            version=args.version,
            file_path=args.file,
            description=args.description,
            targets=targets,
            provider=args.provider
        )
        print(f"[SUCCESS] Firmware {firmware['version']} uploaded (id {firmware['id']})")
        print(f"   Checksum: {firmware['checksum']}")
        print(f"   File size: {firmware['file_size']} bytes")
        print(f"   Storage: {firmware['storage_provider']}")

        if args.deploy:
            firmware = deploy_firmware(args.base_url, token, firmware['id'])
            print(f"[SUCCESS] Deployment started for printers {', '.join(firmware['target_printers'])}")

    except requests.exceptions.ConnectionError:
        print(f"[ERROR] Cannot connect to backend server at {args.base_url}")
        print("   Make sure your backend is running. Start it with: uvicorn app.main:app")
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"[ERROR] Request failed: {e}")
        if e.response is not None:
            try:
                print(f"   Details: {e.response.json()}")
            except ValueError:
                print(f"   Status: {e.response.status_code}")
                print(f"   Response: {e.response.text[:200]}")
        sys.exit(1)


if __name__ == '__main__':
    main()
