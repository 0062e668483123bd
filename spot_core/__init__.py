# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.
